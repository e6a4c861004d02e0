"""Services for the price history loader."""

from mtg_price_history.services.extractor import extract_prices, iter_price_records, target_dates
from mtg_price_history.services.fetcher import download_file, ensure_source_file
from mtg_price_history.services.progress import FileProgressSink, ProgressReporter, RunState
from mtg_price_history.services.uploader import build_payload, upload_payload

__all__ = [
    "download_file",
    "ensure_source_file",
    "target_dates",
    "iter_price_records",
    "extract_prices",
    "RunState",
    "ProgressReporter",
    "FileProgressSink",
    "build_payload",
    "upload_payload",
]
