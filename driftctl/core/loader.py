from pathlib import Path
from typing import Any

import yaml


def load_record(path: str | Path) -> dict[str, Any]:
    """
    Load a record snapshot from a YAML or JSON file (JSON is valid YAML).

    The document must hold a mapping with string keys.
    """
    file = Path(path).expanduser()
    if not file.is_file():
        raise FileNotFoundError(f"record file not found: {file}")

    try:
        data = yaml.safe_load(file.read_text())
    except yaml.YAMLError as ex:
        raise ValueError(f"record file is not valid YAML/JSON: {file}") from ex

    if data is None:
        return {}

    if not isinstance(data, dict) or not all(isinstance(k, str) for k in data):
        raise ValueError(f"record file must contain a mapping with string keys: {file}")

    return data
