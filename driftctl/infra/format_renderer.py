import json
from enum import Enum

import yaml

from driftctl.core.ports.render import Renderer


class JsonRenderer(Renderer):
    def render(self, data: dict) -> str:
        return json.dumps(_normalize(data), indent=2, sort_keys=False)


class YamlRenderer(Renderer):
    def render(self, data: dict) -> str:
        return yaml.safe_dump(_normalize(data), sort_keys=False)


def _normalize(obj):
    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, dict):
        return {_normalize(k): _normalize(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [_normalize(x) for x in obj]

    return obj
