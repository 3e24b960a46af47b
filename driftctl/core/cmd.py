import argparse
import cmd
import logging
import shlex
from collections.abc import Callable

from driftctl.core.context import CommandContext
from driftctl.core.dispatcher import CommandDispatcher
from driftctl.core.ports.render import Renderer
from driftsync.core.models.conflict import ConflictType


class DriftCmd(cmd.Cmd):
    intro = "Entering driftctl interactive mode. Type 'exit' or 'quit' to leave."
    prompt = "driftctl> "

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        renderers: dict[str, Renderer],
        context_factory: Callable[[], CommandContext],
    ) -> None:
        super().__init__()

        self._dispatcher = dispatcher
        self._renderers = renderers
        self._context_factory = context_factory
        self._context: CommandContext | None = None
        self._argparser = self._argparse()
        self._args = argparse.Namespace(output="yaml")
        self._logger = logging.getLogger("driftctl.cmd")
        self.exit_code = 0

    @property
    def args(self) -> argparse.Namespace:
        return self._args

    @property
    def interactive(self) -> bool:
        return getattr(self._args, "namespace", None) is None

    def parse(self, argv: list[str] | None = None) -> argparse.Namespace:
        self._args = self._argparser.parse_args(argv)
        return self._args

    def run(self) -> int:
        """Execute the parsed one-shot command and return the exit status."""
        self.handle(self._args)
        return self.exit_code

    def handle(self, namespace: argparse.Namespace) -> None:
        arguments = (namespace.namespace, namespace.subcommand)
        try:
            data = self._dispatcher.dispatch(
                *arguments,
                ctx=self._get_context(),
                namespace=namespace
            )
        except (ValueError, OSError, RuntimeError) as ex:
            self._logger.debug(f"Command {' '.join(arguments)} failed", exc_info=ex)
            print(f"error: {ex}")
            self.exit_code = 1
            return

        renderer = self._renderers[getattr(namespace, "output", None) or self._args.output]
        print(renderer.render(data), end="")
        self.exit_code = 0

    def do_clock(self, line):
        self._handle_line("clock", line)

    def do_ts(self, line):
        self._handle_line("ts", line)

    def do_conflict(self, line):
        self._handle_line("conflict", line)

    def do_exit(self, arg):
        return True

    def do_quit(self, arg):
        return True

    def do_EOF(self, arg):
        print()
        return True

    def _handle_line(self, group: str, line: str) -> None:
        try:
            namespace = self._argparser.parse_args([group, *shlex.split(line)])
        except SystemExit:
            # argparse already printed the usage
            return
        namespace.output = self._args.output
        self.handle(namespace)

    def _get_context(self) -> CommandContext:
        if self._context is None:
            self._context = self._context_factory()
        return self._context

    @staticmethod
    def _argparse() -> argparse.ArgumentParser:
        global_opts = argparse.ArgumentParser(
            prog="driftctl",
            description="Inspect and drive a driftsync Hybrid Logical Clock and conflict engine."
        )
        global_opts.add_argument("-c", "--config", help="Path to a driftsync configuration file")
        global_opts.add_argument("-o", "--output", choices=["yaml", "json"], default="yaml")
        global_opts.add_argument(
            "-l", "--log-level",
            default="WARNING",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        )

        sub = global_opts.add_subparsers(dest="namespace")

        clock = sub.add_parser("clock", help="Operate the persisted clock")
        clock_sub = clock.add_subparsers(dest="subcommand", required=True)
        clock_sub.add_parser("now")
        clock_sub.add_parser("peek")
        clock_sub.add_parser("node-id")
        clock_sub.add_parser("reset")
        receive = clock_sub.add_parser("receive")
        receive.add_argument("timestamp")
        merge = clock_sub.add_parser("merge")
        merge.add_argument("timestamp")

        ts = sub.add_parser("ts", help="Inspect serialized timestamps")
        ts_sub = ts.add_subparsers(dest="subcommand", required=True)
        parse = ts_sub.add_parser("parse")
        parse.add_argument("timestamp")
        compare = ts_sub.add_parser("compare")
        compare.add_argument("a")
        compare.add_argument("b")

        conflict = sub.add_parser("conflict", help="Compare and merge record snapshots")
        conflict_sub = conflict.add_subparsers(dest="subcommand", required=True)

        detect = conflict_sub.add_parser("detect")
        _add_snapshot_args(detect)

        resolve = conflict_sub.add_parser("resolve")
        _add_snapshot_args(resolve)
        resolve.add_argument(
            "-s", "--strategy",
            required=True,
            choices=[c.value for c in ConflictType],
        )
        resolve.add_argument("--prefer-local", nargs="+", default=[], metavar="FIELD")
        resolve.add_argument("--prefer-server", nargs="+", default=[], metavar="FIELD")
        resolve.add_argument(
            "--no-partial",
            action="store_true",
            help="Leave truly conflicting fields at their base value"
        )

        suggest = conflict_sub.add_parser("suggest")
        _add_snapshot_args(suggest)
        suggest.add_argument("--local-newer", action="store_true")
        suggest.add_argument("--server-authoritative", action="store_true")
        suggest.add_argument("--threshold", type=float, default=None)

        return global_opts


def _add_snapshot_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("local", help="Local snapshot (YAML or JSON file)")
    parser.add_argument("server", help="Server snapshot (YAML or JSON file)")
    parser.add_argument("-b", "--base", help="Common ancestor snapshot")
