from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from signal_debounce.realtime.debounce import Debouncer
from signal_debounce.realtime.recorder import TraceRecorder
from signal_debounce.realtime.scheduler import AsyncioScheduler, ManualScheduler, SchedulerBase, create_scheduler
from signal_debounce.utils.config_utils import ConfigurationError
from signal_debounce.utils.io_utils import debouncer_section, save_json
from signal_debounce.utils.time_utils import utc_now_iso

TRACE_FILENAME = "debounce_trace.csv"


class DemoApp:
    """Drive a debouncer with a clustered on/off signal and record what it does.

    Every ``interval_ms`` the app calls set_state() with ``True`` for
    ``cluster_size`` ticks and then ``False`` for ``cluster_size`` ticks. With a
    debounce period longer than one cluster the stabilized value never moves;
    with a shorter one it flips once per cluster, one period after the switch.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        session_dir: Path,
        duration_s: float = 10.0,
        interval_ms: Optional[float] = None,
        cluster_size: Optional[int] = None,
        scheduler: Optional[SchedulerBase] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        demo_cfg = config.get("demo", {}) if isinstance(config.get("demo"), dict) else {}
        self.config = config
        self.session_dir = Path(session_dir)
        self.duration_s = max(0.0, float(duration_s))
        self.interval_ms = float(interval_ms if interval_ms is not None else demo_cfg.get("interval_ms", 250.0))
        self.cluster_size = max(1, int(cluster_size if cluster_size is not None else demo_cfg.get("cluster_size", 6)))
        self.scheduler_kind = str(demo_cfg.get("scheduler", "threading"))
        self.scheduler = scheduler
        self._sleep = sleep
        self.logger = logger or logging.getLogger("signal_debounce")

    def run(self) -> int:
        metadata: Dict[str, Any] = {
            "start_time_utc": utc_now_iso(),
            "session_dir": str(self.session_dir),
            "config": self.config,
            "duration_s": self.duration_s,
            "interval_ms": self.interval_ms,
            "cluster_size": self.cluster_size,
            "scheduler": self.scheduler_kind if self.scheduler is None else type(self.scheduler).__name__,
        }

        try:
            if self.scheduler is None:
                self.scheduler = create_scheduler(self.scheduler_kind)
            if isinstance(self.scheduler, AsyncioScheduler):
                raise ConfigurationError("The demo loop is synchronous; use the threading or manual scheduler")
            debouncer = Debouncer(debouncer_section(self.config), scheduler=self.scheduler, logger=self.logger)
        except ConfigurationError:
            self.logger.exception("Invalid demo configuration")
            metadata["status_code"] = 1
            save_json(metadata, self.session_dir / "metadata.json")
            return 1

        set_calls = 0
        accepted_calls = 0
        commits = 0

        def on_commit(state: Any) -> None:
            nonlocal commits
            commits += 1
            self.logger.info("State change listener called with state %r", state)

        trace_path = self.session_dir / TRACE_FILENAME
        with TraceRecorder(trace_path, clock=self.scheduler.now) as recorder, debouncer:
            debouncer.force_state(False)
            recorder.record_force(False)
            debouncer.add_on_state_change_listener(on_commit)
            recorder.attach(debouncer)

            interval_s = self.interval_ms / 1000.0
            n_ticks = int(self.duration_s / interval_s) if interval_s > 0 else 0
            try:
                for tick in range(1, n_ticks + 1):
                    value = tick % (2 * self.cluster_size) >= self.cluster_size
                    accepted = debouncer.set_state(value)
                    set_calls += 1
                    accepted_calls += int(accepted)
                    recorder.record_set(value, accepted, debouncer.get_state())
                    self.logger.info(
                        "Called set_state(%s) and get_state() returns %s", value, debouncer.get_state()
                    )
                    self._wait(interval_s)
            except KeyboardInterrupt:
                self.logger.info("Demo interrupted after %d set_state calls", set_calls)

        metadata.update(
            {
                "end_time_utc": utc_now_iso(),
                "status_code": 0,
                "trace_file": TRACE_FILENAME,
                "runtime_stats": {
                    "set_calls": set_calls,
                    "accepted_calls": accepted_calls,
                    "commits": commits,
                    "final_state": debouncer.get_state(),
                },
            }
        )
        save_json(metadata, self.session_dir / "metadata.json")
        self.logger.info("Session metadata written: %s", self.session_dir / "metadata.json")
        return 0

    def _wait(self, seconds: float) -> None:
        if isinstance(self.scheduler, ManualScheduler):
            self.scheduler.advance(seconds)
        else:
            self._sleep(seconds)
