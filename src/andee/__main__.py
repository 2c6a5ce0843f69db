"""Entry point: python -m andee"""

from __future__ import annotations

import asyncio
import signal

import uvicorn

from andee.infrastructure.config import HOST, PORT
from andee.infrastructure.logger import logger


async def _wait_shutdown_signal(shutdown_event: asyncio.Event, server: uvicorn.Server) -> None:
    await shutdown_event.wait()
    server.should_exit = True


async def main() -> None:
    from andee.app import Service

    service = Service()
    service.init()

    # Handle graceful shutdown
    shutdown_event = asyncio.Event()

    def signal_handler() -> None:
        logger.info("Received shutdown signal")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    server = uvicorn.Server(uvicorn.Config(service.app, host=HOST, port=PORT, log_level="info", access_log=False))
    # Signals are handled above, for both the server and the alarm loop
    server.install_signal_handlers = lambda: None  # type: ignore[method-assign]

    watcher = asyncio.create_task(_wait_shutdown_signal(shutdown_event, server))
    try:
        await service.start()
        logger.info("HTTP server starting", host=HOST, port=PORT)
        await server.serve()
    except KeyboardInterrupt:
        pass
    finally:
        watcher.cancel()
        try:
            await watcher
        except asyncio.CancelledError:
            pass
        await service.shutdown()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
