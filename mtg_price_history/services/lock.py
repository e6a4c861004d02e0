"""Lock file preventing two imports from running at once."""

import logging
import os
import time
from pathlib import Path
from typing import List

from mtg_price_history.config import LOCK_REFRESH_SECONDS, LOCK_STALE_SECONDS
from mtg_price_history.errors import ImportLockedError
from mtg_price_history.utils import now_iso

log = logging.getLogger(__name__)


class ImportLock:
    """Context manager holding the import lock file.

    A lock younger than `stale_after` seconds means another import is
    running; an older (or unreadable) one is left over from a crash and is
    removed. A running import calls refresh() as it goes so the lock stays
    fresh for as long as the run lasts.
    """

    def __init__(self, path: Path, stale_after: float = LOCK_STALE_SECONDS,
                 refresh_every: float = LOCK_REFRESH_SECONDS):
        self.path = Path(path)
        self.stale_after = stale_after
        self.refresh_every = refresh_every
        self.held = False
        self._last_refresh = 0.0

    def lock_age(self) -> float:
        return time.time() - self.path.stat().st_mtime

    def acquire(self):
        if self.path.exists():
            try:
                age = self.lock_age()
            except OSError:
                log.warning("Removing unreadable import lock file %s", self.path)
                self.path.unlink(missing_ok=True)
            else:
                if age <= self.stale_after:
                    raise ImportLockedError(str(self.path), age)
                log.warning("Removing stale import lock file %s (%.0fs old)", self.path, age)
                self.path.unlink(missing_ok=True)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(now_iso())
        self.held = True
        self._last_refresh = time.monotonic()

    def refresh(self):
        """Bump the lock mtime, at most once every `refresh_every` seconds."""
        if not self.held:
            return
        now = time.monotonic()
        if now - self._last_refresh < self.refresh_every:
            return
        self._last_refresh = now
        try:
            os.utime(self.path, None)
        except OSError as e:
            log.warning("Could not refresh lock file %s: %s", self.path, e)

    def release(self):
        if not self.held:
            return
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            log.warning("Could not remove lock file %s: %s", self.path, e)
        self.held = False

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


def clear_import_state(lock_path: Path, progress_path: Path) -> List[str]:
    """Remove the lock and progress files; return what was done."""
    messages = []
    if Path(lock_path).exists():
        Path(lock_path).unlink()
        messages.append("Removed import lock file")
    if Path(progress_path).exists():
        Path(progress_path).unlink()
        messages.append("Removed import progress data")
    if not messages:
        messages.append("No lock files found to remove")
    return messages
