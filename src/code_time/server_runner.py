"""Helpers to launch the HTTP service."""

from __future__ import annotations

import logging
from typing import Optional

import uvicorn

from .config import ServerSettings
from .webapp import create_app

logger = logging.getLogger(__name__)


def run_server(settings: Optional[ServerSettings] = None) -> None:
    """Start the FastAPI service with uvicorn."""
    settings = settings or ServerSettings()
    db_path = settings.resolved_db_path()
    app = create_app(db_path=db_path, settings=settings.engine)

    logger.info("Serving on http://%s:%s using %s", settings.host, settings.port, db_path)
    logging.getLogger("uvicorn.error").setLevel(settings.log_level.upper())
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)
