from __future__ import annotations

import asyncio
import signal

from . import get_node
from ..logging_config import setup_logging


async def _serve() -> None:
    setup_logging()
    node = get_node()
    await node.start()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await stop_event.wait()
    await node.stop()


if __name__ == "__main__":
    asyncio.run(_serve())
