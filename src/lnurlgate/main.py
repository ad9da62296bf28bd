from __future__ import annotations

import asyncio
import logging
import sys

import uvicorn

# Install uvloop for better async performance (Linux/macOS only)
if sys.platform != "win32":
    try:
        import uvloop

        asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    except ImportError:
        pass  # uvloop not available, continue with default event loop

from .envs.server_env import get_settings

logger = logging.getLogger("lnurlgate")


def main() -> None:
    """Main entry point for the LNURL server."""

    settings = get_settings()
    log_level = settings.log_level.upper()
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Domain: %s", settings.domain)
    logger.info("Database: %s", settings.database_url)
    logger.info("LND REST: %s:%s", settings.lnd_rest_host, settings.lnd_rest_port)
    logger.info(
        "Bitcoin RPC: %s:%s", settings.bitcoin_rpc_host, settings.bitcoin_rpc_port
    )
    logger.info(
        "API Documentation: http://%s:%s/docs", settings.api_host, settings.api_port
    )

    # A single worker: the background jobs live in the application lifespan.
    uvicorn.run(
        "lnurlgate.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
        workers=1,
        log_level=log_level.lower(),
    )


if __name__ == "__main__":
    main()
