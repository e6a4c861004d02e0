"""Upload of extracted prices, with an on-disk backup when the POST fails."""

import json
import logging
import time
from pathlib import Path
from typing import List, Optional

import requests

from mtg_price_history.config import UPLOAD_TIMEOUT, USER_AGENT
from mtg_price_history.errors import UploadError
from mtg_price_history.services.extractor import CardPrices
from mtg_price_history.services.progress import ProgressSink
from mtg_price_history.utils import backup_timestamp, format_size, now_iso

log = logging.getLogger(__name__)


def build_payload(dates: List[str], cards: List[CardPrices], processed: int = 0) -> dict:
    """Build the upload body: {dateRange, cards, metadata}."""
    return {
        "dateRange": list(dates),
        "cards": [c.to_dict() for c in cards],
        "metadata": {
            "monthsCollected": len(dates),
            "dataStructure": "monthly_prices",
            "recordsProcessed": processed,
            "cardsWithPrices": len(cards),
            "generatedAt": now_iso(),
        },
    }


def write_backup(payload: dict, backup_dir: Path) -> Path:
    """Write the payload, pretty-printed, to a timestamped backup file."""
    backup_dir = Path(backup_dir)
    backup_dir.mkdir(parents=True, exist_ok=True)
    path = backup_dir / f"price-history-backup-{backup_timestamp()}.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    return path


def _post(url: str, body: bytes, timeout: float) -> requests.Response:
    headers = {
        "Content-Type": "application/json",
        "Content-Length": str(len(body)),
        "User-Agent": USER_AGENT,
    }
    try:
        return requests.post(url, data=body, headers=headers, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise UploadError(url, body=str(e)) from e


def upload_payload(
    url: str,
    payload: dict,
    backup_dir: Path,
    sink: Optional[ProgressSink] = None,
    timeout: float = UPLOAD_TIMEOUT,
) -> float:
    """POST the payload once. Returns elapsed seconds.

    On any failure the payload is saved via write_backup() and the
    UploadError is re-raised (with .backup_path set when the backup worked).
    There is no automatic retry; re-running the loader is the remedy.
    """
    body = json.dumps(payload).encode("utf-8")
    print(f"Uploading {len(payload['cards']):,} cards to {url} ({format_size(len(body))}) ...")

    t0 = time.time()
    try:
        resp = _post(url, body, timeout)
        if not 200 <= resp.status_code < 300:
            raise UploadError(url, status_code=resp.status_code, body=resp.text)
    except UploadError as e:
        log.error("Upload failed: %s", e)
        try:
            e.backup_path = write_backup(payload, backup_dir)
            print(f"Data saved to backup file: {e.backup_path}")
        except (OSError, TypeError, ValueError) as backup_error:
            log.error("Failed to create backup: %s", backup_error)
        raise

    elapsed = time.time() - t0
    print(f"Upload successful! ({elapsed:.1f}s)")
    if sink is not None:
        sink.clear()
    return elapsed
