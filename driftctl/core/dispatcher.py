import argparse
import functools
from typing import Any, Protocol

from driftctl.core.context import CommandContext


class CommandHandler(Protocol):
    def __call__(
        self,
        ctx: CommandContext,
        namespace: argparse.Namespace,
    ) -> dict[str, Any]:
        ...


class CommandDispatcher:
    def __init__(self) -> None:
        self._commands: dict[tuple[str, ...], CommandHandler] = {}

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return sorted(self._commands)

    def dispatch(
        self,
        *arguments: str,
        ctx: CommandContext,
        namespace: argparse.Namespace
    ) -> dict[str, Any]:
        command = self._commands.get(arguments)
        if command is None:
            raise RuntimeError(f"Unknown '{' '.join(arguments)}' Command")
        return command(ctx, namespace)

    def command(self, *arguments: str):
        def decorator(func: CommandHandler):

            @functools.wraps(func)
            def wrapper(
                ctx: CommandContext,
                namespace: argparse.Namespace,
            ) -> dict[str, Any]:
                return func(ctx, namespace)

            self._commands[arguments] = wrapper

            return wrapper

        return decorator
