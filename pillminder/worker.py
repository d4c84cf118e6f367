#!/usr/bin/env python3
"""
pillminder reminder worker
==========================

Runs the reminder scheduling engine in-process with either lifecycle model.

Usage:
    python -m pillminder.worker [--driver scan|timers] [--init-db] [--log-level INFO]
"""
import argparse
import logging
import signal
import threading
from typing import Optional, Sequence

from prometheus_client import start_http_server

from pillminder.core.config import settings
from pillminder.core.log_config import setup_logging
from pillminder.reminders.bootstrap import build_reminder_task, build_schedule_driver


logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Medication reminder worker")
    parser.add_argument(
        "--driver",
        choices=["scan", "timers"],
        default=settings.SCHEDULE_DRIVER,
        help="Lifecycle model: one scan per minute, or one timer per stage",
    )
    parser.add_argument("--init-db", action="store_true", help="Create missing tables before starting")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level (default: %(default)s)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, settings.LOG_FILE)

    from pillminder.db.session import SessionLocal, engine, init_db

    if args.init_db:
        logger.info("📋 Creating database tables")
        init_db(engine)

    if settings.METRICS_ENABLED:
        start_http_server(settings.METRICS_PORT)
        logger.info(f"📊 Metrics exposed on :{settings.METRICS_PORT}/metrics")

    reminder_task = build_reminder_task(SessionLocal, settings)
    driver = build_schedule_driver(reminder_task, settings, driver=args.driver)

    stop_requested = threading.Event()

    def _handle_signal(signum, _frame):
        logger.info(f"Received signal {signum}, shutting down")
        stop_requested.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    driver.start()
    logger.info(f"🚀 pillminder worker running with the '{args.driver}' driver")
    try:
        while not stop_requested.wait(timeout=1.0):
            pass
    finally:
        # Cancel every timer before the process exits
        driver.shutdown()
        engine.dispose()
        logger.info("Bye~")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
