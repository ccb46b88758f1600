import asyncio
import signal

from foodexpiry.container import build_container
from foodexpiry.db.db import create_tables
from foodexpiry.utils.logging import get_logger

logger = get_logger()


async def run() -> None:
    container = build_container()
    await create_tables(container.engine)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    container.scheduler.initialize()
    logger.info(f"{container.settings.NAME} notification scheduler running")

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down notification scheduler")
        container.scheduler.stop()
        await container.scheduler.wait_in_flight()
        await container.engine.dispose()


if __name__ == "__main__":
    asyncio.run(run())
