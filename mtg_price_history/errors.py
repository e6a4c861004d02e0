"""Exceptions raised by the price history loader."""

from typing import Optional


class PriceHistoryError(Exception):
    """Base class for loader errors."""


class DownloadError(PriceHistoryError):
    """The source file could not be downloaded."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        if status_code is not None:
            message = f"Failed to get '{url}' ({status_code})"
        else:
            message = f"Failed to get '{url}': {reason}"
        super().__init__(message)


class StreamParseError(PriceHistoryError):
    """The source file is not valid JSON (or not the expected shape)."""

    def __init__(self, path: str, reason: str, processed: int = 0):
        self.path = path
        self.reason = reason
        self.processed = processed
        super().__init__(f"Stream parse failed in {path} after {processed} records: {reason}")


class UploadError(PriceHistoryError):
    """The upload POST failed (non-2xx, network error or timeout)."""

    def __init__(self, url: str, status_code: Optional[int] = None, body: str = ""):
        self.url = url
        self.status_code = status_code
        self.body = body
        self.backup_path = None  # set by the uploader once a backup is written
        if status_code is not None:
            message = f"Upload failed ({status_code}): {body}"
        else:
            message = f"Upload to {url} failed: {body}"
        super().__init__(message)


class ProgressWriteError(PriceHistoryError):
    """The progress side file could not be written. Never fatal."""


class ImportLockedError(PriceHistoryError):
    """Another import holds a fresh lock file."""

    def __init__(self, lock_path: str, age_seconds: float):
        self.lock_path = lock_path
        self.age_seconds = age_seconds
        super().__init__(
            f"Import already in progress. Started {round(age_seconds)} seconds ago ({lock_path})"
        )
