from __future__ import annotations

import asyncio

import uvicorn
from macla.config.settings import HTTP_HOST, PORT
from macla.core.runtime import RuntimeControl, Services
from macla.logger import logger

from .app import create_app


def build_server(control: RuntimeControl, services: Services) -> uvicorn.Server:
    # log_config=None keeps uvicorn on the loguru forwarding set up in macla.logger
    config = uvicorn.Config(
        create_app(control, services),
        host=HTTP_HOST,
        port=PORT,
        log_config=None,
        access_log=False,
        ws="auto",
    )
    server = uvicorn.Server(config)
    server.install_signal_handlers = lambda: None  # signals belong to main.py
    return server


async def main_loop(control: RuntimeControl, services: Services) -> None:
    server = build_server(control, services)

    async def stop_on_shutdown() -> None:
        await control.shutdown_event.wait()
        logger.info("Shutdown requested, stopping HTTP server")
        server.should_exit = True

    stopper = asyncio.create_task(stop_on_shutdown())
    logger.info(f"HTTP server listening on http://{HTTP_HOST}:{PORT}")
    try:
        await server.serve()
    finally:
        stopper.cancel()
        await asyncio.gather(stopper, return_exceptions=True)
        logger.info("HTTP server stopped")
