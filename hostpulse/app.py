from __future__ import annotations
import argparse
import dataclasses
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from .collectors import PsutilSource
from .config import CFG_PATH, AppConfig, load_config
from .errors import ConfigError, SourceInitError
from .logsink import open_log_sink
from .models import AlertEvent, Frame
from .monitor import Monitor

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Wiring
# ──────────────────────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="hostpulse",
        description="Sample CPU, memory, disk and network usage; keep running stats and alert on pressure.",
    )
    p.add_argument("--config", default=str(CFG_PATH), help="JSON config file (created with defaults if missing)")
    p.add_argument("--console", action="store_true", help="terminal dashboard instead of the desktop window")
    p.add_argument("--interval", type=int, metavar="MS", help="refresh interval in milliseconds")
    p.add_argument("--history", type=int, metavar="N", help="samples kept for trend graphs")
    p.add_argument("--log-path", help="CSV log file")
    p.add_argument("--no-log", action="store_true", help="do not write the CSV log")
    p.add_argument("--edge-alerts", action="store_true", help="alert only when a level rises")
    p.add_argument("--no-network", action="store_true", help="skip network throughput")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return p


def apply_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    changes = {}
    if args.interval is not None:
        changes["refresh_interval_ms"] = args.interval
    if args.history is not None:
        changes["history_capacity"] = args.history
    if args.log_path:
        changes["log_path"] = args.log_path
    if args.no_log:
        changes["enable_logging"] = False
    if args.edge_alerts:
        changes["alert_mode"] = "on_transition"
    if args.no_network:
        changes["network_monitoring_enabled"] = False
    if args.verbose:
        changes["log_level"] = "DEBUG"
    # replace() re-runs validation
    return dataclasses.replace(cfg, **changes) if changes else cfg


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(name)s] %(message)s",
    )


def build_monitor(cfg: AppConfig, renderer) -> Monitor:
    """Raises SourceInitError when system metrics cannot be read at all."""
    source = PsutilSource(cfg.disk_path, cfg.network_monitoring_enabled)
    sink = open_log_sink(cfg.log_path) if cfg.enable_logging else None
    slow_tasks = {}
    if cfg.top_processes:
        slow_tasks["processes"] = lambda: source.top_processes(cfg.top_processes)
    return Monitor(source, renderer, sink, cfg, slow_tasks=slow_tasks)


def _log_display_path(cfg: AppConfig) -> str:
    return str(Path(cfg.log_path).resolve()) if cfg.enable_logging else ""


# ──────────────────────────────────────────────
# Terminal front-end
# ──────────────────────────────────────────────
def run_console(cfg: AppConfig) -> int:
    from .console import ConsoleRenderer

    renderer = ConsoleRenderer(log_path=_log_display_path(cfg), bell=cfg.alert_sound)
    monitor = build_monitor(cfg, renderer)
    monitor.on_alert(renderer.on_alert)

    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    monitor.run(stop)
    return 0


# ──────────────────────────────────────────────
# Desktop front-end
# ──────────────────────────────────────────────
def run_gui(cfg: AppConfig) -> int:
    from PySide6 import QtWidgets
    from .ui.main_window import MainWindow
    from .workers import MonitorThread, QtRenderer

    app = QtWidgets.QApplication(sys.argv[:1])
    win = MainWindow(cfg, _log_display_path(cfg))

    renderer = QtRenderer()
    monitor = build_monitor(cfg, renderer)
    monitor.on_alert(renderer.on_alert)

    def on_frame(frame: Frame):
        try:
            win.show_frame(frame)
        finally:
            renderer.frame_consumed()

    def on_alert(event: AlertEvent):
        win.show_alert(event)
        if cfg.alert_sound:
            QtWidgets.QApplication.beep()

    renderer.frame_ready.connect(on_frame)
    renderer.alert_raised.connect(on_alert)
    renderer.status_ready.connect(win.show_status)
    renderer.reset_requested.connect(win.reset_view)

    worker = MonitorThread(monitor)
    worker.failed.connect(win.show_status)
    worker.start()
    logger.info("Sampling every %d ms on a worker thread", cfg.refresh_interval_ms)

    win.show()
    code = app.exec()

    worker.stop()
    if renderer.dropped:
        logger.info("%d frames dropped while the window was busy", renderer.dropped)
    return code


# ──────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = apply_overrides(load_config(Path(args.config)), args)
    except ConfigError as e:
        print(f"hostpulse: invalid option: {e}", file=sys.stderr)
        return 2
    setup_logging(cfg.log_level)

    try:
        if args.console:
            return run_console(cfg)
        return run_gui(cfg)
    except SourceInitError as e:
        logger.error("Cannot start monitoring: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
