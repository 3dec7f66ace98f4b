"""Main entry point for the listening timeline collector."""

import asyncio
import logging
import signal
import sys

from collector.runloop import CollectorRunLoop
from collector.settings import CollectorSettings
from shared.config.constants import ServiceName
from shared.db import DatabaseManager
from shared.logging import configure_logging

logger = logging.getLogger(__name__)


def _register_shutdown_signals(loop: asyncio.AbstractEventLoop, shutdown_event: asyncio.Event) -> None:
    """Register signal handlers for graceful shutdown on both Unix and Windows."""

    def _signal_handler_sync(signum: int, _frame: object) -> None:
        logger.info("Shutdown signal received (signal %d)", signum)
        loop.call_soon_threadsafe(shutdown_event.set)

    if sys.platform != "win32":
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, shutdown_event.set)
    else:
        # loop.add_signal_handler is not supported on Windows
        signal.signal(signal.SIGTERM, _signal_handler_sync)
        signal.signal(signal.SIGINT, _signal_handler_sync)


async def main() -> None:
    """Run the collector until SIGINT/SIGTERM."""
    configure_logging(ServiceName.COLLECTOR)
    logger.info("Listening timeline collector starting...")
    settings = CollectorSettings()
    db_manager = DatabaseManager.from_env()
    if db_manager.settings.create_schema:
        await db_manager.create_all()

    shutdown_event = asyncio.Event()
    _register_shutdown_signals(asyncio.get_running_loop(), shutdown_event)

    try:
        await CollectorRunLoop(settings, db_manager).run(shutdown_event)
    finally:
        await db_manager.dispose()
        logger.info("Collector shut down complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
