"""Recurring second-installment sweep.

Runs inside the API process as a daemon thread when
``THRIFT_RUN_INSTALLMENT_SWEEPER`` is set, or standalone::

    python -m thrift_logistics.workers.installments [--once]
"""

from __future__ import annotations

import argparse
import logging
import threading
from typing import Sequence

from ..config import settings
from ..db.session import init_db
from ..log_setup import configure_logging
from ..services.payments.installments import InstallmentSweeper, SweepReport

logger = logging.getLogger(__name__)


class SweepWorker:
    """Run ``InstallmentSweeper.run_once`` every ``interval`` seconds until stopped."""

    def __init__(
        self,
        sweeper: InstallmentSweeper | None = None,
        interval: float | None = None,
        shutdown_event: threading.Event | None = None,
    ) -> None:
        self.sweeper = sweeper or InstallmentSweeper()
        self.interval = interval if interval is not None else settings.sweep_interval_seconds
        self.shutdown_event = shutdown_event or threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> SweepReport | None:
        try:
            return self.sweeper.run_once()
        except Exception:
            logger.exception("Installment sweep run failed")
            return None

    def run(self) -> None:
        logger.info(f"Installment sweep worker started; running every {self.interval}s")
        try:
            while not self.shutdown_event.is_set():
                self.run_once()
                self.shutdown_event.wait(self.interval)
        finally:
            logger.info("Installment sweep worker stopped.")

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name="installment-sweeper", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = 10.0) -> None:
        self.shutdown_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thrift_logistics.workers.installments",
        description="Charge due Payday Flex installments and send payday reminders.",
    )
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit.")
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help=f"Seconds between sweeps (default {settings.sweep_interval_seconds}).",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging()
    init_db()

    worker = SweepWorker(interval=args.interval)
    if args.once:
        report = worker.run_once()
        return 0 if report is not None and not report.errors else 1
    try:
        worker.run()
    except KeyboardInterrupt:
        logger.info("Installment sweep worker interrupted; exiting.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
