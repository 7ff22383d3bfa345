import json
import logging

import pandas as pd
import pytest

from signal_debounce.analysis.analyze import analyze_session
from signal_debounce.realtime import app as app_module
from signal_debounce.realtime.app import TRACE_FILENAME, DemoApp
from signal_debounce.realtime.scheduler import ManualScheduler

TEST_LOGGER = logging.getLogger("demo_tests")


def _run_demo(tmp_path, config) -> int:
    app = DemoApp(
        config=config,
        session_dir=tmp_path,
        duration_s=6.0,
        interval_ms=250,
        cluster_size=6,
        scheduler=ManualScheduler(),
        logger=TEST_LOGGER,
    )
    return app.run()


def test_demo_records_one_commit_per_cluster(tmp_path) -> None:
    assert _run_demo(tmp_path, {"debouncer": {"debounce_period_ms": 500}}) == 0

    with (tmp_path / "metadata.json").open("r", encoding="utf-8") as f:
        metadata = json.load(f)
    stats = metadata["runtime_stats"]
    assert stats == {"set_calls": 24, "accepted_calls": 5, "commits": 4, "final_state": True}

    trace = pd.read_csv(tmp_path / TRACE_FILENAME)
    commits = trace[trace["event"] == "commit"]
    assert commits["t_s"].tolist() == [0.5, 1.75, 3.25, 4.75]
    assert commits["value"].tolist() == [False, True, False, True]
    assert (trace["event"] == "force").sum() == 1


def test_demo_then_analyze_session(tmp_path) -> None:
    _run_demo(tmp_path, {"debouncer": {"debounce_period_ms": 500}})

    summary_path = analyze_session(tmp_path, debounce_period_ms_override=500, logger=TEST_LOGGER)

    summary = pd.read_csv(summary_path).iloc[0]
    assert summary["n_commits"] == 4
    assert summary["n_accepted"] == 5
    assert summary["n_redundant"] == 19
    assert summary["n_superseded"] == 0
    assert summary["mean_latency_ms"] == pytest.approx(500.0)
    assert summary["latency_error_ms"] == pytest.approx(0.0)
    assert (tmp_path / "occupancy.csv").exists()
    assert (tmp_path / "trace.png").exists()
    assert (tmp_path / "occupancy.png").exists()


def test_demo_with_invalid_config_fails(tmp_path) -> None:
    assert _run_demo(tmp_path, {"debouncer": {"debounce_period": 500}}) == 1
    assert not (tmp_path / TRACE_FILENAME).exists()


def test_analyze_session_requires_trace(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        analyze_session(tmp_path, logger=TEST_LOGGER)


def test_demo_closes_debouncer_before_trace_file(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    clock = ManualScheduler()
    pending_at_close = []

    class _CheckingRecorder(app_module.TraceRecorder):
        def close(self) -> None:
            pending_at_close.append(clock.pending_count)
            super().close()

    monkeypatch.setattr(app_module, "TraceRecorder", _CheckingRecorder)
    app = DemoApp(
        config={"debouncer": {"debounce_period_ms": 500}},
        session_dir=tmp_path,
        duration_s=6.0,
        interval_ms=250,
        cluster_size=6,
        scheduler=clock,
        logger=TEST_LOGGER,
    )

    assert app.run() == 0
    assert pending_at_close == [0]


def test_demo_scheduler_kind_comes_from_config(tmp_path) -> None:
    config = {
        "debouncer": {"debounce_period_ms": 500},
        "demo": {"scheduler": "manual", "interval_ms": 250, "cluster_size": 6},
    }
    app = DemoApp(config=config, session_dir=tmp_path, duration_s=6.0, logger=TEST_LOGGER)

    assert app.run() == 0
    assert isinstance(app.scheduler, ManualScheduler)

    with (tmp_path / "metadata.json").open("r", encoding="utf-8") as f:
        metadata = json.load(f)
    assert metadata["scheduler"] == "manual"
    assert metadata["runtime_stats"]["commits"] == 4


@pytest.mark.parametrize("kind", ["asyncio", "cron"])
def test_demo_rejects_unusable_scheduler_kind(tmp_path, kind: str) -> None:
    config = {"debouncer": {"debounce_period_ms": 500}, "demo": {"scheduler": kind}}
    app = DemoApp(config=config, session_dir=tmp_path, duration_s=1.0, logger=TEST_LOGGER)

    assert app.run() == 1
    assert not (tmp_path / TRACE_FILENAME).exists()
