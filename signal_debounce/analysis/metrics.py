from __future__ import annotations

from typing import Any, Dict, Optional

import numpy as np
import pandas as pd


def _ordered(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    out["t_s"] = pd.to_numeric(out["t_s"], errors="coerce")
    return out.sort_values("t_s", kind="stable").reset_index(drop=True)


def _events(df: pd.DataFrame) -> np.ndarray:
    return df["event"].astype(str).str.lower().to_numpy()


def _accepted(df: pd.DataFrame) -> np.ndarray:
    if "accepted" not in df.columns:
        return np.ones(len(df), dtype=bool)
    return pd.to_numeric(df["accepted"], errors="coerce").fillna(0).to_numpy(dtype=float) > 0.5


def compute_commit_latencies(df: pd.DataFrame) -> np.ndarray:
    """Seconds between each commit and the accepted set_state call that started its timer."""
    if df.empty or "event" not in df.columns or "t_s" not in df.columns:
        return np.array([], dtype=float)

    df = _ordered(df)
    t = df["t_s"].to_numpy(dtype=float)
    event = _events(df)
    is_candidate = (event == "set") & _accepted(df)

    last_candidate_t = pd.Series(np.where(is_candidate, t, np.nan)).ffill().to_numpy(dtype=float)
    commit = event == "commit"
    latencies = t[commit] - last_candidate_t[commit]
    return latencies[np.isfinite(latencies)]


def compute_stable_occupancy(df: pd.DataFrame) -> pd.DataFrame:
    columns = ["stable_value", "time_s"]
    if df.empty or "event" not in df.columns or "t_s" not in df.columns:
        return pd.DataFrame(columns=columns)

    df = _ordered(df)
    t = df["t_s"].to_numpy(dtype=float)
    event = _events(df)
    changes = np.isin(event, ["commit", "force"])
    if not changes.any():
        return pd.DataFrame(columns=columns)

    change_t = t[changes]
    change_v = df["value"].astype(str).to_numpy()[changes]
    end_t = float(np.nanmax(t))
    durations = np.clip(np.diff(np.append(change_t, end_t)), 0.0, None)

    occupancy = pd.DataFrame({"stable_value": change_v, "time_s": durations})
    return occupancy.groupby("stable_value", as_index=False, sort=True)["time_s"].sum()


def compute_summary(df: pd.DataFrame, debounce_period_ms: Optional[float] = None) -> Dict[str, Any]:
    if df.empty or "event" not in df.columns or "t_s" not in df.columns:
        return {
            "n_set_calls": 0,
            "n_accepted": 0,
            "n_redundant": 0,
            "n_commits": 0,
            "n_superseded": 0,
            "n_forces": 0,
            "mean_latency_ms": np.nan,
            "max_latency_ms": np.nan,
            "latency_error_ms": np.nan,
            "session_duration_s": 0.0,
            "n_rows": 0,
        }

    df = _ordered(df)
    t = df["t_s"].to_numpy(dtype=float)
    event = _events(df)
    accepted = _accepted(df)

    is_set = event == "set"
    is_candidate = is_set & accepted
    is_commit = event == "commit"

    n_set_calls = int(is_set.sum())
    n_accepted = int(is_candidate.sum())
    n_commits = int(is_commit.sum())

    # The last candidate is still waiting for its timer when no commit follows it.
    candidate_idx = np.flatnonzero(is_candidate)
    commit_idx = np.flatnonzero(is_commit)
    still_pending = bool(candidate_idx.size) and (not commit_idx.size or commit_idx[-1] < candidate_idx[-1])
    n_superseded = max(0, n_accepted - n_commits - int(still_pending))

    latencies_ms = compute_commit_latencies(df) * 1000.0
    mean_latency_ms = float(np.mean(latencies_ms)) if latencies_ms.size else np.nan
    max_latency_ms = float(np.max(latencies_ms)) if latencies_ms.size else np.nan
    latency_error_ms = np.nan
    if debounce_period_ms is not None and latencies_ms.size:
        latency_error_ms = mean_latency_ms - float(debounce_period_ms)

    finite_t = t[np.isfinite(t)]
    session_duration_s = float(finite_t.max() - finite_t.min()) if finite_t.size else 0.0

    return {
        "n_set_calls": n_set_calls,
        "n_accepted": n_accepted,
        "n_redundant": n_set_calls - n_accepted,
        "n_commits": n_commits,
        "n_superseded": n_superseded,
        "n_forces": int((event == "force").sum()),
        "mean_latency_ms": mean_latency_ms,
        "max_latency_ms": max_latency_ms,
        "latency_error_ms": latency_error_ms,
        "session_duration_s": session_duration_s,
        "n_rows": int(len(df)),
    }
