"""Logging configuration based on environment."""

import logging
import sys

from subscribe.api.middleware import RequestContextFilter
from subscribe.config import Settings

# Development format: cleaner
DEV_FORMAT = "%(levelname)s:     %(name)s - %(message)s"

# Production format: full details for debugging
PROD_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"


def get_uvicorn_log_config(settings: Settings) -> dict:
    """Get uvicorn log config based on environment.

    Uvicorn's own records go through the same request context filter as the
    application's, and to the log file when one is configured.
    """
    is_dev = settings.is_development
    request_tag = "" if is_dev else "[%(request_id)s] "

    handlers: dict[str, dict] = {
        "access": {
            "class": "logging.StreamHandler",
            "formatter": "access",
            "filters": ["request_context"],
            "stream": "ext://sys.stdout",
        },
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "filters": ["request_context"],
            "stream": "ext://sys.stdout",
        },
    }
    access_handlers = ["access"]
    default_handlers = ["default"]

    if settings.log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "file",
            "filters": ["request_context"],
            "filename": settings.log_file,
            "encoding": "utf-8",
        }
        access_handlers.append("file")
        default_handlers.append("file")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_context": {"()": "subscribe.api.middleware.RequestContextFilter"},
        },
        "formatters": {
            "access": {
                "()": "uvicorn.logging.AccessFormatter",
                "fmt": f'%(levelprefix)s {request_tag}"%(request_line)s" %(status_code)s'
                if is_dev
                else f'%(levelprefix)s {request_tag}%(client_addr)s - "%(request_line)s" '
                "%(status_code)s",
            },
            "default": {
                "()": "uvicorn.logging.DefaultFormatter",
                "fmt": "%(levelprefix)s %(message)s"
                if is_dev
                else f"%(asctime)s %(levelprefix)s {request_tag}%(message)s",
            },
            "file": {
                "format": PROD_FORMAT,
            },
        },
        "handlers": handlers,
        "loggers": {
            "uvicorn.access": {
                "handlers": access_handlers,
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.error": {
                "handlers": default_handlers,
                "level": "INFO",
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Settings) -> None:
    """Configure logging for the application."""
    is_dev = settings.is_development
    log_format = DEV_FORMAT if is_dev else PROD_FORMAT

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))

    for handler in handlers:
        handler.addFilter(RequestContextFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format=log_format,
        handlers=handlers,
        force=True,
    )

    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiosmtplib").setLevel(logging.WARNING)
