from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from signal_debounce.analysis.metrics import compute_stable_occupancy, compute_summary
from signal_debounce.analysis.plots import plot_occupancy, plot_trace
from signal_debounce.realtime.app import TRACE_FILENAME
from signal_debounce.utils.io_utils import load_yaml


def analyze_session(
    session_dir: Path,
    debounce_period_ms_override: Optional[float] = None,
    output_plots_override: Optional[bool] = None,
    logger: Optional[logging.Logger] = None,
) -> Path:
    logger = logger or logging.getLogger("signal_debounce")
    session_dir = Path(session_dir)

    trace_path = session_dir / TRACE_FILENAME
    if not trace_path.exists():
        raise FileNotFoundError(f"Missing debounce trace: {trace_path}")

    config = {}
    config_path = session_dir / "config_used.yaml"
    if config_path.exists():
        config = load_yaml(config_path)

    analysis_cfg = config.get("analysis", {}) if isinstance(config, dict) else {}
    debouncer_cfg = config.get("debouncer", {}) if isinstance(config, dict) else {}
    debounce_period_ms = (
        debounce_period_ms_override
        if debounce_period_ms_override is not None
        else (debouncer_cfg or {}).get("debounce_period_ms")
    )
    output_plots = (
        output_plots_override
        if output_plots_override is not None
        else bool((analysis_cfg or {}).get("output_plots", True))
    )

    df = pd.read_csv(trace_path, keep_default_na=False)
    summary = compute_summary(df, debounce_period_ms=debounce_period_ms)
    occupancy = compute_stable_occupancy(df)

    summary_path = session_dir / "summary.csv"
    pd.DataFrame([summary]).to_csv(summary_path, index=False)
    occupancy.to_csv(session_dir / "occupancy.csv", index=False)
    logger.info("Summary written: %s", summary_path)

    if output_plots:
        try:
            plot_trace(df, out_path=session_dir / "trace.png")
            plot_occupancy(occupancy, out_path=session_dir / "occupancy.png")
            logger.info("Plots written under %s", session_dir)
        except Exception:
            logger.exception("Failed to generate plots")

    return summary_path
