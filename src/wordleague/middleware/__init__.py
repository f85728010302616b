"""Middleware registration."""

from fastapi import FastAPI

from wordleague.config import Settings
from wordleague.middleware.error_handler import setup_error_handlers
from wordleague.middleware.logging import setup_logging
from wordleague.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging, JSON error handlers and request ids."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
