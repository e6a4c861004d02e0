"""Run state and progress reporting for the streaming import.

The extractor bumps counters on a RunState after every record and calls
ProgressReporter.tick(); the reporter does the expensive work (rate
sampling, console line, side file write) only every `sample_interval`
records.

The side file is a best-effort channel for external pollers: a failed write
is logged and otherwise ignored.
"""

import json
import logging
import os
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Deque, Dict, List, Optional

from mtg_price_history.config import (
    ESTIMATED_TOTAL_RECORDS,
    PROGRESS_SAMPLE_INTERVAL,
    RATE_WINDOW_SIZE,
)
from mtg_price_history.errors import ProgressWriteError
from mtg_price_history.utils import format_duration

log = logging.getLogger(__name__)

PHASE_STARTING = "starting"
PHASE_PROCESSING = "processing"
PHASE_UPLOADING = "uploading"


@dataclass
class CoverageStats:
    """How many records had a price for one target date."""
    date: str
    found: int = 0
    total: int = 0

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 0.0
        return self.found / self.total * 100


@dataclass
class RunState:
    """Mutable counters for a single run, shared by extractor and reporter."""
    started_at: float
    coverage: Dict[str, CoverageStats]
    processed: int = 0
    valid: int = 0
    last_sample_time: float = 0.0
    last_sample_count: int = 0
    rate_window: Deque[float] = field(default_factory=lambda: deque(maxlen=RATE_WINDOW_SIZE))

    @classmethod
    def create(cls, dates: List[str], clock: Callable[[], float] = time.monotonic,
               window_size: int = RATE_WINDOW_SIZE) -> "RunState":
        now = clock()
        return cls(
            started_at=now,
            coverage={d: CoverageStats(date=d) for d in dates},
            last_sample_time=now,
            rate_window=deque(maxlen=window_size),
        )

    def average_rate(self) -> float:
        if not self.rate_window:
            return 0.0
        return sum(self.rate_window) / len(self.rate_window)

    def coverage_list(self) -> List[CoverageStats]:
        return list(self.coverage.values())


@dataclass
class ProgressState:
    """Snapshot written to the progress side file."""
    total_estimate: int
    processed: int
    percent: int
    elapsed_seconds: float
    eta_seconds: Optional[float]
    rate: float
    in_progress: bool
    phase: str

    def to_dict(self) -> dict:
        return {
            "totalEstimate": self.total_estimate,
            "processed": self.processed,
            "percent": self.percent,
            "elapsedSeconds": round(self.elapsed_seconds, 3),
            "etaSeconds": None if self.eta_seconds is None else round(self.eta_seconds, 1),
            "rate": round(self.rate, 2),
            "inProgress": self.in_progress,
            "phase": self.phase,
        }


class ProgressSink(ABC):
    """Where progress snapshots go. report() must never raise."""

    @abstractmethod
    def report(self, state: ProgressState):
        pass

    @abstractmethod
    def clear(self):
        """Signal the terminal 'done' state."""
        pass


class FileProgressSink(ProgressSink):
    """Overwrites a single JSON file with the latest snapshot."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def write(self, state: ProgressState):
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(state.to_dict()))
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise ProgressWriteError(f"Could not write progress file {self.path}: {e}") from e

    def report(self, state: ProgressState):
        try:
            self.write(state)
        except ProgressWriteError as e:
            log.warning("%s", e)

    def clear(self):
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            log.warning("Could not remove progress file %s: %s", self.path, e)


def read_progress(path: Path) -> Optional[dict]:
    """Read the progress side file, returning None if absent or mid-write."""
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    return data


class ProgressReporter:
    """Throttled rate/ETA computation over a RunState."""

    def __init__(
        self,
        state: RunState,
        sink: ProgressSink,
        total_estimate: int = ESTIMATED_TOTAL_RECORDS,
        sample_interval: int = PROGRESS_SAMPLE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        echo: bool = True,
        heartbeat: Optional[Callable[[], None]] = None,
    ):
        self.state = state
        self.sink = sink
        self.total_estimate = max(1, total_estimate)
        self.sample_interval = max(1, sample_interval)
        self.clock = clock
        self.echo = echo
        self.heartbeat = heartbeat
        self.samples_taken = 0

    def start(self):
        self._beat()
        self.sink.report(self.snapshot(PHASE_STARTING))

    def tick(self):
        processed = self.state.processed
        if processed == 0 or processed % self.sample_interval:
            return

        self._sample()
        self._beat()
        snapshot = self.snapshot(PHASE_PROCESSING)
        self.samples_taken += 1
        # Console output every other sample to keep terminal I/O down
        if self.echo and self.samples_taken % 2 == 0:
            print(self.format_line(snapshot), flush=True)
        self.sink.report(snapshot)

    def finish(self) -> ProgressState:
        """Final 100% snapshot; the side file stays until upload succeeds."""
        elapsed = self.clock() - self.state.started_at
        processed = self.state.processed
        final = ProgressState(
            total_estimate=processed,
            processed=processed,
            percent=100,
            elapsed_seconds=elapsed,
            eta_seconds=0.0,
            rate=processed / elapsed if elapsed > 0 else 0.0,
            in_progress=True,
            phase=PHASE_UPLOADING,
        )
        if self.echo:
            print(self.format_line(final), flush=True)
        self._beat()
        self.sink.report(final)
        return final

    def _beat(self):
        if self.heartbeat is not None:
            self.heartbeat()

    def _sample(self):
        now = self.clock()
        window_elapsed = now - self.state.last_sample_time
        window_processed = self.state.processed - self.state.last_sample_count
        if window_elapsed > 0 and window_processed > 0:
            self.state.rate_window.append(window_processed / window_elapsed)
        self.state.last_sample_time = now
        self.state.last_sample_count = self.state.processed

    def snapshot(self, phase: str) -> ProgressState:
        processed = self.state.processed
        elapsed = self.clock() - self.state.started_at
        rate = self.state.average_rate()

        eta = None
        if processed < self.total_estimate:
            percent = min(95, int(processed * 100 / self.total_estimate + 0.5))
            if rate > 0:
                eta = (self.total_estimate - processed) / rate
        else:
            # The estimate is a guess; hold at 99 until the stream really ends
            percent = 99

        return ProgressState(
            total_estimate=max(processed, self.total_estimate),
            processed=processed,
            percent=percent,
            elapsed_seconds=elapsed,
            eta_seconds=eta,
            rate=rate,
            in_progress=True,
            phase=phase,
        )

    def format_line(self, snapshot: ProgressState) -> str:
        return (
            f"[PROGRESS] {snapshot.processed:,} cards ({snapshot.percent}%) | "
            f"Valid: {self.state.valid:,} | {snapshot.rate:.0f}/sec | "
            f"{format_duration(snapshot.elapsed_seconds)} | "
            f"ETA: {format_duration(snapshot.eta_seconds)}"
        )
