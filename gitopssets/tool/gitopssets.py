"""Command line tool for generating the elements of GitOpsSets."""

import argparse
import asyncio
import logging
import sys
import traceback

from gitopssets.exceptions import GitOpsSetsException
from . import generate

_LOGGER = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitopssets",
        description="Generate the template elements of GitOpsSet resources.",
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS)

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)
    generate.GenerateAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """gitopssets command line tool main entry point."""
    args = _make_parser().parse_args(argv)
    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except GitOpsSetsException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("gitopssets error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
