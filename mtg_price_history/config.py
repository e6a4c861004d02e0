"""Paths, URLs and tuning constants.

Every path/URL resolves in the same order:
1. Explicit override (CLI argument)
2. Environment variable
3. Default under the data home ($MTGPH_HOME or ~/.mtgph)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

MTGJSON_ALLPRICES_URL = "https://mtgjson.com/api/v5/AllPrices.json"
DEFAULT_API_BASE_URL = "http://localhost:3000"
PRICE_HISTORY_ENDPOINT = "/api/price-history"

USER_AGENT = "MTGPriceHistory/1.0"

# Streaming / progress tuning
READ_BUFFER_SIZE = 64 * 1024
PROGRESS_SAMPLE_INTERVAL = 25000
RATE_WINDOW_SIZE = 3
ESTIMATED_TOTAL_RECORDS = 500000  # rough guess, AllPrices.json is not pre-counted
GC_INTERVAL = 50000

DEBUG_RECORD_LIMIT = 20

UPLOAD_TIMEOUT = 120  # seconds; payloads can be tens of MB
DOWNLOAD_TIMEOUT = 60  # seconds between bytes, not total
LOCK_STALE_SECONDS = 10 * 60
LOCK_REFRESH_SECONDS = 30  # how often a running import bumps the lock mtime

_TRUTHY = ("1", "true", "yes", "on")


def get_home() -> Path:
    """Return the data home directory (MTGPH_HOME env or ~/.mtgph)."""
    if "MTGPH_HOME" in os.environ:
        return Path(os.environ["MTGPH_HOME"])
    return Path.home() / ".mtgph"


def _resolve_path(override: Optional[str], env_var: str, default_name: str) -> Path:
    if override:
        return Path(override)
    env_value = os.environ.get(env_var)
    if env_value:
        return Path(env_value)
    return get_home() / default_name


def get_source_path(override: Optional[str] = None) -> Path:
    """Local path of AllPrices.json."""
    return _resolve_path(override, "MTGPH_SOURCE_FILE", "AllPrices.json")


def get_source_url(override: Optional[str] = None) -> str:
    """Download URL for AllPrices.json."""
    return override or os.environ.get("MTGPH_SOURCE_URL") or MTGJSON_ALLPRICES_URL


def get_upload_url(override: Optional[str] = None) -> str:
    """Endpoint the extracted prices are POSTed to."""
    if override:
        return override
    env_url = os.environ.get("MTGPH_UPLOAD_URL")
    if env_url:
        return env_url
    base = os.environ.get("API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/")
    return base + PRICE_HISTORY_ENDPOINT


def get_progress_path(override: Optional[str] = None) -> Path:
    """Progress side file polled by external observers."""
    return _resolve_path(override, "MTGPH_PROGRESS_FILE", "AllPrices.import.progress.json")


def get_lock_path(override: Optional[str] = None) -> Path:
    return _resolve_path(override, "MTGPH_LOCK_FILE", "AllPrices.import-in-progress")


def get_backup_dir(override: Optional[str] = None) -> Path:
    """Directory for price-history-backup-*.json files written on upload failure."""
    return _resolve_path(override, "MTGPH_BACKUP_DIR", "backups")


def debug_from_env() -> bool:
    return os.environ.get("MTGPH_DEBUG", "").strip().lower() in _TRUTHY


@dataclass
class RunConfig:
    """Settings for one loader run, resolved once from CLI args and environment."""

    source_path: Path
    source_url: str
    upload_url: str
    progress_path: Path
    lock_path: Path
    backup_dir: Path
    debug: bool = False
    record_limit: Optional[int] = None
    total_estimate: int = ESTIMATED_TOTAL_RECORDS
    sample_interval: int = PROGRESS_SAMPLE_INTERVAL
    upload_timeout: float = UPLOAD_TIMEOUT
    force_download: bool = False

    @classmethod
    def resolve(
        cls,
        source: Optional[str] = None,
        upload_url: Optional[str] = None,
        debug: bool = False,
        limit: Optional[int] = None,
        force_download: bool = False,
    ) -> "RunConfig":
        if limit is not None and limit < 1:
            raise ValueError(f"Record limit must be at least 1, got {limit}")

        debug = debug or debug_from_env()
        record_limit = limit
        if debug and record_limit is None:
            record_limit = DEBUG_RECORD_LIMIT

        total_estimate = ESTIMATED_TOTAL_RECORDS
        if record_limit is not None:
            total_estimate = record_limit

        return cls(
            source_path=get_source_path(source),
            source_url=get_source_url(),
            upload_url=get_upload_url(upload_url),
            progress_path=get_progress_path(),
            lock_path=get_lock_path(),
            backup_dir=get_backup_dir(),
            debug=debug,
            record_limit=record_limit,
            total_estimate=total_estimate,
            sample_interval=1 if debug else PROGRESS_SAMPLE_INTERVAL,
            force_download=force_download,
        )
