"""Ordering and deduplication of decoded readings."""

from collections.abc import Sequence
from datetime import datetime
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from .decode import Event


class DecodedLog(Sequence):
    """
    Read-only, timestamp-ordered readings with at most one per second.

    Instances are built by ``assemble``; the constructor trusts its input.
    """

    def __init__(self, events: Iterable[Event] = ()):
        self._events = tuple(events)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return DecodedLog(self._events[index])
        return self._events[index]

    def __len__(self) -> int:
        return len(self._events)

    def __eq__(self, other) -> bool:
        if isinstance(other, DecodedLog):
            return self._events == other._events
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._events)

    def __repr__(self) -> str:
        if not self._events:
            return "DecodedLog([])"
        return f"DecodedLog({len(self)} events, {self.first.timestamp} .. {self.last.timestamp})"

    @property
    def first(self) -> Optional[Event]:
        return self._events[0] if self._events else None

    @property
    def last(self) -> Optional[Event]:
        return self._events[-1] if self._events else None

    @property
    def timestamps(self) -> np.ndarray:
        return np.array([e.timestamp for e in self._events], dtype="datetime64[s]")

    @property
    def counts(self) -> np.ndarray:
        return np.array([e.count for e in self._events], dtype=np.int64)

    @property
    def total_clicks(self) -> int:
        return int(self.counts.sum())

    def since(self, start: datetime) -> "DecodedLog":
        """Readings at or after ``start``."""
        return DecodedLog(e for e in self._events if e.timestamp >= start)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Readings as a DataFrame with columns ``time`` (datetime64) and ``cps``.
        """
        return pd.DataFrame({"time": self.timestamps, "cps": self.counts})


def assemble(events: Iterable[Event]) -> DecodedLog:
    """
    Sort readings by timestamp and drop later duplicates.

    The sort is stable, so for a repeated timestamp the reading met first
    during the scan is the one kept.
    """
    ordered = sorted(events, key=lambda e: e.timestamp)
    kept = []
    for event in ordered:
        if kept and kept[-1].timestamp == event.timestamp:
            continue
        kept.append(event)
    return DecodedLog(kept)
