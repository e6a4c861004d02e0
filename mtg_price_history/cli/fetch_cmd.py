"""Fetch command: mtg-prices fetch [--force]"""

import sys

from mtg_price_history.config import get_source_path, get_source_url
from mtg_price_history.errors import DownloadError
from mtg_price_history.services.fetcher import ensure_source_file


def register(subparsers):
    """Register the fetch subcommand."""
    parser = subparsers.add_parser(
        "fetch",
        help="Download AllPrices.json from MTGJSON",
    )
    parser.add_argument(
        "dest",
        nargs="?",
        help="Where to save the file (default: $MTGPH_SOURCE_FILE or ~/.mtgph/AllPrices.json)",
    )
    parser.add_argument(
        "--url",
        help="Download URL (default: $MTGPH_SOURCE_URL or the MTGJSON AllPrices.json URL)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-download even if file already exists",
    )
    parser.set_defaults(func=run)


def run(args):
    """Run the fetch command."""
    dest = get_source_path(args.dest)
    url = get_source_url(args.url)

    try:
        downloaded = ensure_source_file(dest, url, force=args.force)
    except DownloadError as e:
        print(f"Download failed: {e}", file=sys.stderr)
        sys.exit(1)

    if not downloaded:
        print(f"{dest} already exists. Use --force to re-download.")
