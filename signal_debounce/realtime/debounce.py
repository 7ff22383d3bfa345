from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from numbers import Real
from typing import Any, Callable, Dict, Mapping, Optional

import numpy as np

from signal_debounce.realtime.scheduler import SchedulerBase, TaskHandle, ThreadingScheduler
from signal_debounce.utils.config_utils import ConfigurationError, validate_configuration

Listener = Callable[[Any], None]


class _Unset:
    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def _same_value(a: Any, b: Any) -> bool:
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        # Element-wise comparisons (numpy arrays) have no single truth value.
        try:
            return bool(np.array_equal(a, b))
        except (TypeError, ValueError):
            return a is b


@dataclass(frozen=True)
class DebouncerConfig:
    debounce_period_ms: float
    on_state_change: Optional[Listener] = None
    force_cancels_pending: bool = False

    MAXIMAL_TEMPLATE = {
        "debounce_period_ms": None,
        "on_state_change": None,
        "force_cancels_pending": False,
    }
    MINIMAL_TEMPLATE = {
        "debounce_period_ms": None,
    }

    @classmethod
    def from_mapping(cls, config: Optional[Mapping[str, Any]]) -> "DebouncerConfig":
        validated = validate_configuration(
            config,
            maximal_template=cls.MAXIMAL_TEMPLATE,
            minimal_template=cls.MINIMAL_TEMPLATE,
        )

        period = validated["debounce_period_ms"]
        if isinstance(period, bool) or not isinstance(period, Real):
            raise ConfigurationError(f"debounce_period_ms must be a number, got {period!r}")
        period = float(period)
        if not math.isfinite(period) or period < 0:
            raise ConfigurationError(f"debounce_period_ms must be finite and >= 0, got {period!r}")

        on_state_change = validated["on_state_change"]
        if on_state_change is not None and not callable(on_state_change):
            raise ConfigurationError("on_state_change must be callable or None")

        force_cancels_pending = validated["force_cancels_pending"]
        if not isinstance(force_cancels_pending, bool):
            raise ConfigurationError(
                f"force_cancels_pending must be a bool, got {force_cancels_pending!r}"
            )

        return cls(
            debounce_period_ms=period,
            on_state_change=on_state_change,
            force_cancels_pending=force_cancels_pending,
        )

    @property
    def debounce_period_s(self) -> float:
        return self.debounce_period_ms / 1000.0


class Debouncer:
    """Filters a noisy stream of set_state() calls into a stable value.

    The stabilized value only changes once set_state() has been called with the
    same value for a full ``debounce_period_ms`` without any different value in
    between. Registered listeners are called once per stabilization, in the
    order they were added. The value can be polled with get_state().

    ``on_state_change`` is accepted in the config for compatibility but is not
    called; use add_on_state_change_listener() instead.
    """

    def __init__(
        self,
        config: Optional[Mapping[str, Any]],
        scheduler: Optional[SchedulerBase] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = DebouncerConfig.from_mapping(config)
        self._scheduler = scheduler or ThreadingScheduler()
        self.logger = logger or logging.getLogger("signal_debounce")

        self._lock = threading.RLock()
        self._candidate_state: Any = UNSET
        self._stable_state: Any = UNSET
        self._listeners: Dict[int, Listener] = {}
        self._next_listener_id = 0
        self._pending: Optional[TaskHandle] = None
        self._pending_token: Optional[object] = None
        self._closed = False

    @property
    def config(self) -> DebouncerConfig:
        return self._config

    @property
    def candidate_state(self) -> Any:
        return self._candidate_state

    @property
    def is_pending(self) -> bool:
        return self._pending_token is not None

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def set_state(self, value: Any) -> bool:
        """Offer a new candidate value.

        Returns True when ``value`` differs from the current candidate and a new
        stabilization timer was started, False when the call was a no-op.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Debouncer is closed")
            if self._candidate_state is not UNSET and _same_value(value, self._candidate_state):
                return False

            self._candidate_state = value
            self._cancel_pending()

            token = object()
            self._pending_token = token
            self._pending = self._scheduler.call_later(
                self._config.debounce_period_s,
                lambda: self._on_timer(token, value),
            )
            self.logger.debug(
                "Debounce candidate -> %r (commit in %.1f ms)", value, self._config.debounce_period_ms
            )
            return True

    def force_state(self, value: Any) -> None:
        with self._lock:
            self._stable_state = value
            if self._config.force_cancels_pending:
                self._cancel_pending()
                self._candidate_state = value

    def get_state(self) -> Any:
        return self._stable_state

    def add_on_state_change_listener(self, callback: Listener) -> int:
        with self._lock:
            listener_id = self._next_listener_id
            self._next_listener_id += 1
            self._listeners[listener_id] = callback
        return listener_id

    def remove_on_state_change_listener(self, listener_id: int) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)

    def close(self) -> None:
        with self._lock:
            self._cancel_pending()
            self._closed = True

    def __enter__(self) -> "Debouncer":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        self._pending = None
        self._pending_token = None

    def _on_timer(self, token: object, value: Any) -> None:
        with self._lock:
            # A late-firing timer that was superseded or cancelled must not commit.
            if token is not self._pending_token:
                return
            self._pending = None
            self._pending_token = None
            self._stable_state = value
            listeners = sorted(self._listeners.items())

        self.logger.debug("Debounced state committed: %r", value)
        for listener_id, callback in listeners:
            try:
                callback(value)
            except Exception:
                self.logger.exception("State change listener %d failed for value %r", listener_id, value)
