"""Entry point for the ZenCare API.

Launches the FastAPI application with Uvicorn.  It is intended to be
executed from the project root, for example under Docker, where you
only specify a single Python file to run.

Configuration (``SECRET_KEY``, ``DATABASE_URL``, ``AI_CHAT_URL`` and the
rest, see ``zencare_api/app/core/config.py``) is read from environment
variables.  ``HOST`` and ``PORT`` choose the listen address and default
to ``0.0.0.0`` and ``8000``.

Usage:
    python run.py
"""
import asyncio
import logging
import os

from uvicorn import Config, Server

from zencare_api.app.main import app


async def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    config = Config(app=app, host=host, port=port, reload=False, log_level="info")
    server = Server(config)
    logging.getLogger(__name__).info("Starting ZenCare API on %s:%s", host, port)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
