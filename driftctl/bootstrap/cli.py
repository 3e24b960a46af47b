import os
import sys

from driftctl.bootstrap.deps import get_cli
from driftsync.bootstrap.config.loader import CONFIG_ENV
from driftsync.bootstrap.deps import get_store
from driftsync.core.helpers.utils import scan, setup_logging


@scan("driftctl.bootstrap.commands")
def main():
    cli = get_cli()
    args = cli.parse()

    setup_logging(args.log_level)
    if args.config:
        os.environ[CONFIG_ENV] = args.config

    try:
        if cli.interactive:
            cli.cmdloop()
        else:
            sys.exit(cli.run())
    finally:
        if get_store.cache_info().currsize:
            get_store().close()


if __name__ == "__main__":
    main()
