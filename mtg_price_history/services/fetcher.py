"""Download of the MTGJSON source dump."""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

import requests

from mtg_price_history.config import DOWNLOAD_TIMEOUT, READ_BUFFER_SIZE, USER_AGENT
from mtg_price_history.errors import DownloadError
from mtg_price_history.utils import format_size

log = logging.getLogger(__name__)


def download_file(url: str, dest: Path, timeout: float = DOWNLOAD_TIMEOUT, chunk_size: int = READ_BUFFER_SIZE,
                  on_chunk: Optional[Callable[[], None]] = None):
    """Stream a URL to dest without holding the body in memory.

    Anything other than a 200 raises DownloadError. If the request or the
    write fails midway, dest is removed so a truncated dump is never
    mistaken for a complete one. `on_chunk` is called after every chunk.
    """
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)

    try:
        resp = requests.get(url, stream=True, timeout=timeout, headers={"User-Agent": USER_AGENT})
    except requests.exceptions.RequestException as e:
        raise DownloadError(url, reason=str(e)) from e

    try:
        if resp.status_code != 200:
            raise DownloadError(url, status_code=resp.status_code)

        try:
            with open(dest, "wb") as out:
                for chunk in resp.iter_content(chunk_size=chunk_size):
                    if chunk:
                        out.write(chunk)
                    if on_chunk is not None:
                        on_chunk()
        except requests.exceptions.RequestException as e:
            dest.unlink(missing_ok=True)
            raise DownloadError(url, reason=str(e)) from e
        except BaseException:
            dest.unlink(missing_ok=True)
            raise
    finally:
        resp.close()


def ensure_source_file(path: Path, url: str, force: bool = False,
                       on_chunk: Optional[Callable[[], None]] = None) -> bool:
    """Make sure the source dump exists locally.

    Returns True if a download happened, False if the file was already there.
    """
    path = Path(path)
    if path.exists() and not force:
        log.info("Source file already present: %s (%s)", path, format_size(path.stat().st_size))
        return False

    print(f"Downloading {url} ...")
    t0 = time.time()
    download_file(url, path, on_chunk=on_chunk)
    elapsed = time.time() - t0
    print(f"Download complete: {path} ({format_size(path.stat().st_size)}, {elapsed:.1f}s)")
    return True
