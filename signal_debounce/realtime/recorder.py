from __future__ import annotations

import csv
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from signal_debounce.realtime.debounce import UNSET, Debouncer

TRACE_FIELDS = ["t_s", "event", "value", "accepted", "stable_value"]


def _cell(value: Any) -> Any:
    return "" if value is UNSET else value


class TraceRecorder:
    """CSV log of set/force calls and commits made by one debouncer."""

    def __init__(self, path: Path, flush_every: int = 200, clock: Callable[[], float] = time.monotonic):
        self.path = Path(path)
        self.flush_every = int(flush_every)
        self._clock = clock
        self._t0 = clock()
        self._lock = threading.Lock()
        self._file = self.path.open("w", newline="", encoding="utf-8")
        self._writer = csv.DictWriter(self._file, fieldnames=TRACE_FIELDS)
        self._writer.writeheader()
        self._buffer: List[Dict[str, object]] = []

    def attach(self, debouncer: Debouncer) -> int:
        return debouncer.add_on_state_change_listener(self.record_commit)

    def record_set(self, value: Any, accepted: bool, stable_value: Any = UNSET) -> None:
        self._append("set", value, int(bool(accepted)), stable_value)

    def record_force(self, value: Any) -> None:
        self._append("force", value, 1, value)

    def record_commit(self, value: Any) -> None:
        self._append("commit", value, 1, value)

    def flush(self) -> None:
        with self._lock:
            self._flush_locked()

    def close(self) -> None:
        with self._lock:
            if self._file.closed:
                return
            self._flush_locked()
            self._file.close()

    def __enter__(self) -> "TraceRecorder":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _append(self, event: str, value: Any, accepted: int, stable_value: Optional[Any]) -> None:
        row = {
            "t_s": round(self._clock() - self._t0, 6),
            "event": event,
            "value": _cell(value),
            "accepted": accepted,
            "stable_value": _cell(stable_value),
        }
        with self._lock:
            if self._file.closed:
                return
            self._buffer.append(row)
            if len(self._buffer) >= self.flush_every:
                self._flush_locked()

    def _flush_locked(self) -> None:
        if not self._buffer:
            return
        self._writer.writerows(self._buffer)
        self._buffer.clear()
        self._file.flush()
