"""CLI entry point and subcommand assembly."""

import argparse
import sys

from mtg_price_history.utils import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mtg-prices",
        description="MTGJSON price history loader - extract 6 months of card prices and upload them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug logging",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Also write the full log to this file",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")

    from mtg_price_history.cli import fetch_cmd, run_cmd, status_cmd

    for module in (run_cmd, fetch_cmd, status_cmd):
        module.register(subparsers)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    configure_logging(verbose=args.verbose, log_file=args.log_file)
    args.func(args)
