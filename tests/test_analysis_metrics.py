import numpy as np
import pandas as pd
import pytest

from signal_debounce.analysis.metrics import compute_commit_latencies, compute_stable_occupancy, compute_summary


def _trace() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "t_s": [0.0, 0.25, 0.5, 0.75, 1.0, 2.0, 2.5, 3.0],
            "event": ["force", "set", "set", "set", "set", "commit", "set", "set"],
            "value": [False, True, True, False, True, True, False, False],
            "accepted": [1, 1, 0, 1, 1, 1, 1, 0],
            "stable_value": [False, False, False, False, False, True, True, True],
        }
    )


def test_compute_summary_basic() -> None:
    summary = compute_summary(_trace(), debounce_period_ms=1000)

    assert summary["n_set_calls"] == 6
    assert summary["n_accepted"] == 4
    assert summary["n_redundant"] == 2
    assert summary["n_commits"] == 1
    assert summary["n_superseded"] == 2
    assert summary["n_forces"] == 1
    assert summary["mean_latency_ms"] == 1000.0
    assert summary["max_latency_ms"] == 1000.0
    assert summary["latency_error_ms"] == 0.0
    assert summary["session_duration_s"] == 3.0
    assert summary["n_rows"] == 8


def test_compute_summary_orders_rows_by_time() -> None:
    shuffled = _trace().iloc[[5, 0, 7, 2, 1, 4, 3, 6]]
    assert compute_summary(shuffled) == pytest.approx(compute_summary(_trace()), nan_ok=True)


def test_compute_summary_empty() -> None:
    summary = compute_summary(pd.DataFrame())
    assert summary["n_rows"] == 0
    assert np.isnan(summary["mean_latency_ms"])


def test_commit_latencies_use_latest_accepted_candidate() -> None:
    latencies = compute_commit_latencies(_trace())
    assert latencies.tolist() == [1.0]


def test_stable_occupancy_splits_time_by_value() -> None:
    occupancy = compute_stable_occupancy(_trace())
    assert occupancy["stable_value"].tolist() == ["False", "True"]
    assert occupancy["time_s"].tolist() == [2.0, 1.0]


def test_stable_occupancy_without_changes_is_empty() -> None:
    df = _trace()
    df = df[df["event"] == "set"]
    assert compute_stable_occupancy(df).empty
