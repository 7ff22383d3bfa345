from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd


def plot_trace(df: pd.DataFrame, out_path: Path) -> None:
    t = pd.to_numeric(df.get("t_s"), errors="coerce")
    event = df.get("event", pd.Series([""] * len(df))).astype(str)
    value = df.get("value", pd.Series([""] * len(df))).astype(str)
    accepted = pd.to_numeric(df.get("accepted", pd.Series([1] * len(df))), errors="coerce").fillna(0) > 0.5

    levels = _levels(value)
    y = value.map(levels)

    candidate = (event == "set") & accepted
    stable = event.isin(["commit", "force"])

    fig, ax = plt.subplots(figsize=(9, 3.5))
    if candidate.any():
        ax.step(t[candidate], y[candidate], where="post", lw=1.0, alpha=0.6, color="tab:gray", label="candidate")
    if stable.any():
        t_stable = np.append(t[stable].to_numpy(dtype=float), float(np.nanmax(t)))
        y_stable = np.append(y[stable].to_numpy(dtype=float), y[stable].to_numpy(dtype=float)[-1])
        ax.step(t_stable, y_stable, where="post", lw=2.0, color="tab:blue", label="stabilized")
    ax.set_title("Debounced Signal")
    ax.set_xlabel("Time (s)")
    ax.set_ylabel("Value")
    ax.set_yticks(list(levels.values()))
    ax.set_yticklabels(list(levels.keys()))
    ax.legend(loc="best")
    fig.tight_layout()
    fig.savefig(out_path, dpi=150)
    plt.close(fig)


def plot_occupancy(occupancy_df: pd.DataFrame, out_path: Path) -> None:
    labels = occupancy_df.get("stable_value", pd.Series(dtype=str)).astype(str).tolist()
    times = pd.to_numeric(occupancy_df.get("time_s", pd.Series(dtype=float)), errors="coerce").fillna(0.0)

    fig, ax = plt.subplots(figsize=(6, 3.5))
    ax.bar(labels, times.to_numpy(dtype=float), color="tab:blue")
    ax.set_title("Time per Stabilized Value")
    ax.set_xlabel("Stabilized value")
    ax.set_ylabel("Time (s)")
    fig.tight_layout()
    fig.savefig(out_path, dpi=150)
    plt.close(fig)


def _levels(value: pd.Series) -> Dict[str, int]:
    seen: List[str] = []
    for v in value:
        if v not in seen and v not in {"", "nan"}:
            seen.append(v)
    return {v: i for i, v in enumerate(sorted(seen))}
