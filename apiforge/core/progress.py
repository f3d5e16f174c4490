"""One-way progress channel from a running pipeline to its caller."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    percent: int
    label: str


ProgressSink = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Wraps a caller-supplied sink.

    Reported values are clamped to [0, 99] and never decrease; only
    ``complete()`` emits 100, and only once. After ``close()`` the sink is
    abandoned and every later report is dropped.
    """

    def __init__(self, sink: Optional[ProgressSink] = None):
        self._sink = sink
        self._percent = 0
        self._completed = False
        self._closed = False

    @property
    def percent(self) -> int:
        return self._percent

    @property
    def closed(self) -> bool:
        return self._closed

    def report(self, percent: float, label: str) -> None:
        value = min(99, max(0, int(percent)))
        self._emit(max(self._percent, value), label)

    def complete(self, label: str) -> None:
        if self._completed:
            return
        self._completed = True
        self._emit(100, label)

    def close(self) -> None:
        self._closed = True
        self._sink = None

    def _emit(self, percent: int, label: str) -> None:
        if self._closed:
            return
        self._percent = percent
        if self._sink is None:
            return
        try:
            self._sink(ProgressEvent(percent=percent, label=label))
        except Exception:
            log.warning("Progress sink raised; continuing", exc_info=True)
