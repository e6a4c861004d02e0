"""Shared utilities for the price history loader."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def now_iso() -> str:
    """Return current time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def backup_timestamp() -> str:
    """Filesystem-safe UTC timestamp for backup file names."""
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as '12m 5s' (or 'N/A' when unknown)."""
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        return "N/A"
    seconds = max(0, int(round(seconds)))
    return f"{seconds // 60}m {seconds % 60}s"


def format_size(num_bytes: int) -> str:
    """Format a byte count as MB with one decimal."""
    return f"{num_bytes / (1024 * 1024):.1f} MB"


def format_box(title: str, width: int = 60) -> str:
    """Format a box title for CLI output."""
    return f"{'═' * width}\n{title.center(width)}\n{'═' * width}"


def configure_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Configure root logging for a CLI run.

    Console logging goes to stderr so it doesn't mix with the progress
    lines printed to stdout. An optional log file receives everything at
    DEBUG level.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose or log_file else logging.INFO)

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)
