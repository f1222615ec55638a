"""Per-channel store of recent readings with optional aggregation."""

from __future__ import annotations

import copy
import enum
import logging
import threading
from typing import Iterator

from vzlog.reading import Reading

log = logging.getLogger(__name__)


class AggMode(enum.Enum):
    """How buffered readings are combined when aggregated."""

    NONE = 0
    MAX = 1
    AVG = 2
    SUM = 3


class Buffer:
    """Thread-safe list of readings awaiting delivery."""

    def __init__(self) -> None:
        self._readings: list[Reading] = []
        self._lock = threading.RLock()
        self.aggmode = AggMode.NONE
        self._last_avg: Reading | None = None

    @property
    def lock(self) -> threading.RLock:
        """The lock guarding the buffer, usable as a context manager."""
        return self._lock

    def push(self, reading: Reading) -> None:
        with self._lock:
            self._readings.append(reading)

    def aggregate(self, aggtime: int, agg_fixed_interval: bool) -> None:
        """Collapse live readings into the latest one and drop the rest."""
        if self.aggmode is AggMode.NONE:
            return

        with self._lock:
            live = [r for r in self._readings if not r.deleted]
            if live:
                # max() keeps the first of equally timed readings
                latest = max(live, key=lambda r: r.time_ms)
                if self.aggmode is AggMode.MAX:
                    latest.value = max(r.value for r in live)
                elif self.aggmode is AggMode.SUM:
                    latest.value = sum(r.value for r in live)
                elif self.aggmode is AggMode.AVG:
                    self._average_into(live, latest)
                log.debug("%s result %f @ %d", self.aggmode.name, latest.value, latest.time_ms)
                for r in live:
                    if r is not latest:
                        r.mark_delete()

            if agg_fixed_interval and aggtime > 0:
                for r in self._readings:
                    if not r.deleted:
                        r.set_time(aggtime * (r.time_ms // 1000 // aggtime), 0)

        self.clean()

    def _average_into(self, live: list[Reading], latest: Reading) -> None:
        # Time-weighted mean; the latest reading of the previous call is the
        # starting point, and readings are assumed to be sorted by time.
        previous = self._last_avg
        total = 0.0
        span = 0.0
        for r in live:
            if previous is not None:
                timespan = (r.time_ms - previous.time_ms) / 1000.0
                total += previous.value * timespan
                span += timespan
            previous = r
        self._last_avg = copy.copy(latest)
        if span > 0.0:
            latest.value = total / span

    def clean(self, deleted_only: bool = True) -> None:
        """Remove deleted readings, or all readings if ``deleted_only`` is false."""
        with self._lock:
            if deleted_only:
                self._readings = [r for r in self._readings if not r.deleted]
            else:
                self._readings.clear()

    def undelete(self) -> None:
        with self._lock:
            for r in self._readings:
                r.reset()

    def dump(self) -> str:
        """Render the buffered values compactly, e.g. for debug output."""
        with self._lock:
            values = "".join(f"{r.value:.4g}," for r in self._readings)
        return "{" + values + "}"

    def __iter__(self) -> Iterator[Reading]:
        with self._lock:
            snapshot = list(self._readings)
        return iter(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._readings)