#!/usr/bin/env python
# backend/tutorbook/commands/worker.py
"""
Standalone session completion worker.

Runs the completion sweep without a Celery broker, either once or on a
fixed interval until SIGINT/SIGTERM.

Usage:
    python -m tutorbook.commands.worker --once          # Single sweep, then exit
    python -m tutorbook.commands.worker                 # Loop every N seconds
    python -m tutorbook.commands.worker --interval 30   # Override the interval
    python -m tutorbook.commands.worker --metrics-port 9108  # Serve /metrics for scraping
"""

import argparse
import json
import logging
import signal
import sys
import threading
from typing import Any, Dict, List, Optional

from ..core.config import settings
from ..core.logging import setup_logging
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..tasks.session_completion import run_completion_sweep

logger = logging.getLogger(__name__)


class CompletionWorker:
    """Interval loop around the completion sweep."""

    def __init__(self, interval_seconds: int, batch_size: Optional[int] = None):
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self._stop = threading.Event()

    def tick(self) -> Dict[str, Any]:
        return run_completion_sweep(batch_size=self.batch_size)

    def stop(self, *_: Any) -> None:
        logger.info("Shutdown requested; finishing current sweep")
        self._stop.set()

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self.stop)
        signal.signal(signal.SIGTERM, self.stop)

    def run_forever(self) -> None:
        logger.info(f"Completion worker started (interval={self.interval_seconds}s)")
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:
                # Keep the loop alive; the next tick retries whatever failed
                logger.exception("Completion sweep failed")
            self._stop.wait(self.interval_seconds)
        logger.info("Completion worker stopped")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="tutorbook session completion worker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tutorbook.commands.worker --once
  python -m tutorbook.commands.worker --interval 30 --batch-size 200
        """,
    )
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    parser.add_argument(
        "--interval",
        type=int,
        default=settings.session_completion_interval_seconds,
        help="Seconds between sweeps (default: %(default)s)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.session_completion_batch_size,
        help="Sessions examined per sweep (default: %(default)s)",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port while running",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the worker command."""
    setup_logging()
    args = build_parser().parse_args(argv)
    if args.interval <= 0 or args.batch_size <= 0:
        logger.error("--interval and --batch-size must be positive")
        return 2

    if args.metrics_port is not None:
        prometheus_metrics.start_server(args.metrics_port)

    worker = CompletionWorker(args.interval, batch_size=args.batch_size)
    if args.once:
        result = worker.tick()
        print(json.dumps(result))
        return 0

    worker.install_signal_handlers()
    worker.run_forever()
    return 0


if __name__ == "__main__":
    sys.exit(main())
