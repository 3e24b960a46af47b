import os
from pathlib import Path

CONFIG_ENV = "DRIFTSYNCCONFIG"
DEFAULT_CONFIG_NAME = "driftsync.yaml"


def get_configfile() -> Path | None:
    """
    Locate the YAML configuration file.

    Priority: DRIFTSYNCCONFIG environment variable (set by `driftctl
    --config`) > 'driftsync.yaml' in the current working directory.
    Without either, the built-in defaults apply and None is returned.
    """
    raw = os.getenv(CONFIG_ENV)

    if raw is None:
        file = Path.cwd() / DEFAULT_CONFIG_NAME
        return file if file.is_file() else None

    file = Path(raw).expanduser()
    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            f"  - Or set the {CONFIG_ENV} environment variable\n"
            f"  - Or place a '{DEFAULT_CONFIG_NAME}' file in the current working directory."
        )

    return file
