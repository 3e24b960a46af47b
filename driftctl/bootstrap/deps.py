from functools import lru_cache

from driftctl.core.cmd import DriftCmd
from driftctl.core.context import CommandContext
from driftctl.core.dispatcher import CommandDispatcher
from driftctl.infra.format_renderer import JsonRenderer, YamlRenderer
from driftsync.bootstrap.deps import get_clock, get_config


@lru_cache
def get_dispatcher() -> CommandDispatcher:
    return CommandDispatcher()


@lru_cache
def get_cli() -> DriftCmd:
    renderers = {
        "yaml": YamlRenderer(),
        "json": JsonRenderer(),
    }
    return DriftCmd(get_dispatcher(), renderers, get_context)


def get_context() -> CommandContext:
    return CommandContext(config=get_config(), clock_factory=get_clock)
