from __future__ import annotations

import argparse
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import yaml

from signal_debounce.analysis.analyze import analyze_session
from signal_debounce.realtime.app import DemoApp
from signal_debounce.realtime.logging_utils import setup_logging
from signal_debounce.utils.config_utils import ConfigurationError
from signal_debounce.utils.io_utils import load_debouncer_config, load_yaml, prepare_session_dir, save_yaml


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "demo":
        _cmd_demo(args)
        return
    if args.command == "analyze_session":
        _cmd_analyze_session(args)
        return
    if args.command == "validate_config":
        _cmd_validate_config(args)
        return

    parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="signal-debounce", description="Debouncer demo, analysis and config CLI")
    sub = parser.add_subparsers(dest="command")

    p_demo = sub.add_parser("demo", help="Drive a debouncer with a clustered on/off signal and record a trace")
    p_demo.add_argument("--config", required=True, help="Path to config YAML")
    p_demo.add_argument("--out_dir", default=None, help="Session output root override")
    p_demo.add_argument("--duration_s", type=float, default=10.0, help="Demo run duration in seconds")
    p_demo.add_argument("--interval_ms", type=float, default=None, help="Time between set_state calls")
    p_demo.add_argument("--cluster_size", type=int, default=None, help="Identical set_state calls per cluster")
    p_demo.add_argument("--no_analysis", action="store_true", help="Skip session analysis after the run")

    p_an = sub.add_parser("analyze_session", help="Analyze one session directory")
    p_an.add_argument("--session_dir", required=True, help="Path to session directory")
    p_an.add_argument("--debounce_period_ms", type=float, default=None, help="Override debounce period")
    p_an.add_argument("--no_plots", action="store_true", help="Disable plot output")

    p_val = sub.add_parser("validate_config", help="Validate the debouncer section of a config YAML")
    p_val.add_argument("--config", required=True, help="Path to config YAML")

    return parser


def _cmd_demo(args: argparse.Namespace) -> None:
    config = load_yaml(Path(args.config))
    session_dir = prepare_session_dir(config, out_dir_override=args.out_dir)

    used_cfg_path = session_dir / "config_used.yaml"
    save_yaml(config, used_cfg_path)

    logger = setup_logging(session_dir)
    logger.info("Config copied to: %s", used_cfg_path)

    app = DemoApp(
        config=config,
        session_dir=session_dir,
        duration_s=args.duration_s,
        interval_ms=args.interval_ms,
        cluster_size=args.cluster_size,
        logger=logger,
    )
    status = app.run()
    if status != 0:
        raise SystemExit(status)

    if not args.no_analysis:
        summary_path = analyze_session(session_dir=session_dir, logger=logger)
        print(summary_path)


def _cmd_analyze_session(args: argparse.Namespace) -> None:
    session_dir = Path(args.session_dir)
    logger = setup_logging(session_dir)
    summary_path = analyze_session(
        session_dir=session_dir,
        debounce_period_ms_override=args.debounce_period_ms,
        output_plots_override=(False if args.no_plots else None),
        logger=logger,
    )
    print(summary_path)


def _cmd_validate_config(args: argparse.Namespace) -> None:
    logger = setup_logging()
    try:
        config = load_debouncer_config(Path(args.config))
    except ConfigurationError as exc:
        logger.error("Invalid debouncer config in %s: %s", args.config, exc)
        raise SystemExit(2)

    merged = asdict(config)
    if merged["on_state_change"] is not None:
        merged["on_state_change"] = repr(merged["on_state_change"])
    print(yaml.safe_dump({"debouncer": merged}, sort_keys=False), end="")


if __name__ == "__main__":
    main(sys.argv[1:])
