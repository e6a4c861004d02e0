"""Run command: mtg-prices run [SOURCE] [UPLOAD_URL] [--debug]"""

import argparse
import sys
import time
from datetime import date
from typing import Optional

from mtg_price_history.config import RunConfig
from mtg_price_history.errors import PriceHistoryError, UploadError
from mtg_price_history.services.diagnostics import DebugStats
from mtg_price_history.services.extractor import ExtractionResult, extract_prices, target_dates
from mtg_price_history.services.fetcher import ensure_source_file
from mtg_price_history.services.lock import ImportLock
from mtg_price_history.services.progress import FileProgressSink, ProgressReporter, RunState
from mtg_price_history.services.uploader import build_payload, upload_payload
from mtg_price_history.utils import configure_logging

DEBUG_TOKEN = "debug"


def register(subparsers):
    """Register the run subcommand."""
    parser = subparsers.add_parser(
        "run",
        help="Extract monthly prices from AllPrices.json and upload them",
        description=(
            "Download AllPrices.json if missing, stream it once to collect prices for the "
            "same day of each of the last 6 months, then POST the result."
        ),
    )
    parser.add_argument(
        "source",
        nargs="?",
        help="Path to AllPrices.json (default: $MTGPH_SOURCE_FILE or ~/.mtgph/AllPrices.json)",
    )
    parser.add_argument(
        "upload_url",
        nargs="?",
        help="Endpoint to POST results to (default: $MTGPH_UPLOAD_URL or $API_BASE_URL/api/price-history)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Process only the first 20 cards with detailed diagnostics",
    )
    parser.add_argument(
        "--limit",
        type=_positive_int,
        metavar="N",
        help="Stop after this many source records",
    )
    parser.add_argument(
        "--force-download",
        action="store_true",
        help="Re-download AllPrices.json even if it exists",
    )
    parser.set_defaults(func=run)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _split_debug_token(source: Optional[str], upload_url: Optional[str]):
    """Allow a bare 'debug' token in either positional slot."""
    debug = False
    if source == DEBUG_TOKEN:
        source, debug = None, True
    if upload_url == DEBUG_TOKEN:
        upload_url, debug = None, True
    return source, upload_url, debug


def run(args):
    """Run the run command."""
    source, upload_url, debug_token = _split_debug_token(args.source, args.upload_url)
    config = RunConfig.resolve(
        source=source,
        upload_url=upload_url,
        debug=args.debug or debug_token,
        limit=args.limit,
        force_download=args.force_download,
    )
    if config.debug:
        configure_logging(verbose=True, log_file=getattr(args, "log_file", None))

    try:
        run_import(config)
    except UploadError as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.backup_path:
            print(f"Backup written to: {e.backup_path}", file=sys.stderr)
        sys.exit(1)
    except PriceHistoryError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def run_import(config: RunConfig, today: Optional[date] = None) -> ExtractionResult:
    """Fetch, extract and upload. Raises PriceHistoryError subclasses on failure."""
    t0 = time.time()

    with ImportLock(config.lock_path) as lock:
        ensure_source_file(
            config.source_path,
            config.source_url,
            force=config.force_download,
            on_chunk=lock.refresh,
        )

        dates = target_dates(today)
        print(f"Target dates for price collection: {', '.join(dates)}")
        if config.debug:
            print(f"DEBUG MODE: processing {config.record_limit} cards with detailed analysis")
        elif config.record_limit is not None:
            print(f"Processing at most {config.record_limit:,} cards")
        else:
            print("FULL MODE: processing all cards")

        sink = FileProgressSink(config.progress_path)
        state = RunState.create(dates)
        reporter = ProgressReporter(
            state,
            sink,
            total_estimate=config.total_estimate,
            sample_interval=config.sample_interval,
            heartbeat=lock.refresh,
        )
        diagnostics = DebugStats(dates) if config.debug else None

        print(f"Processing {config.source_path} (streaming) ...")
        reporter.start()
        result = extract_prices(
            config.source_path,
            dates,
            state,
            limit=config.record_limit,
            reporter=reporter,
            diagnostics=diagnostics,
        )
        reporter.finish()

        print()
        print(f"[COMPLETE] Processed {result.processed:,} total cards, "
              f"extracted {len(result.cards):,} with monthly price data")
        if result.stopped_early:
            print(f"  (stopped at record limit of {config.record_limit})")
        print("Monthly data coverage:")
        for stats in result.coverage:
            print(f"  {stats.date}: {stats.found:,}/{stats.total:,} cards ({stats.percent:.1f}%)")
        if result.matched_paths:
            print("Price sources used:")
            for label, count in sorted(result.matched_paths.items(), key=lambda kv: -kv[1]):
                print(f"  {label:<24} {count:,}")

        if diagnostics is not None:
            print()
            for line in diagnostics.summary_lines(result.coverage):
                print(line)

        print()
        payload = build_payload(dates, result.cards, result.processed)
        upload_payload(
            config.upload_url,
            payload,
            config.backup_dir,
            sink=sink,
            timeout=config.upload_timeout,
        )

    print(f"Import completed in {(time.time() - t0) / 60:.1f} minutes total")
    return result
