"""Status commands: mtg-prices status / mtg-prices clear-lock"""

import time

from mtg_price_history.config import get_lock_path, get_progress_path
from mtg_price_history.services.lock import clear_import_state
from mtg_price_history.services.progress import read_progress
from mtg_price_history.utils import format_duration


def register(subparsers):
    """Register the status and clear-lock subcommands."""
    status_parser = subparsers.add_parser(
        "status",
        help="Show progress of a running import",
    )
    status_parser.set_defaults(func=run_status)

    clear_parser = subparsers.add_parser(
        "clear-lock",
        help="Remove a leftover import lock and progress file",
    )
    clear_parser.set_defaults(func=run_clear_lock)


def run_status(args):
    """Print lock state and the latest progress snapshot."""
    lock_path = get_lock_path()
    progress_path = get_progress_path()

    if lock_path.exists():
        age = time.time() - lock_path.stat().st_mtime
        print(f"Import in progress (lock held for {format_duration(age)})")
    else:
        print("No import running")

    progress = read_progress(progress_path)
    if progress is None:
        print("No progress data available")
        return

    processed = _number(progress.get("processed"))
    total = _number(progress.get("totalEstimate"))
    print(f"  Phase:     {progress.get('phase', '?')}")
    print(f"  Processed: {processed:,.0f} / ~{total:,.0f} ({_number(progress.get('percent')):.0f}%)")
    print(f"  Rate:      {_number(progress.get('rate')):.0f}/sec")
    print(f"  Elapsed:   {format_duration(progress.get('elapsedSeconds'))}")
    print(f"  ETA:       {format_duration(progress.get('etaSeconds'))}")


def _number(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def run_clear_lock(args):
    """Remove lock and progress files."""
    for message in clear_import_state(get_lock_path(), get_progress_path()):
        print(message)
