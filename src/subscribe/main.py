"""FastAPI application entrypoint."""

import logging
import time
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

from subscribe import __version__
from subscribe.api.deps import AppServices, get_language
from subscribe.api.middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from subscribe.api.router import build_router
from subscribe.api.utils import message_response, server_error_response
from subscribe.config import Settings, get_settings
from subscribe.services.csrf import CSRFGuard
from subscribe.services.email import EmailBackend, EmailService, get_email_backend
from subscribe.services.mailing_list import MailgunMailingList, MailingList
from subscribe.services.pipeline import SubmissionPipeline
from subscribe.services.rate_limit import SlidingWindowRateLimiter
from subscribe.services.tokens import TokenKind, TokenStore
from subscribe.services.workflow import ConfirmationWorkflow
from subscribe.strings import UI_STRINGS, merge_ui_strings
from subscribe.urls import build_confirmation_endpoint

logger = logging.getLogger(__name__)

HTTP_ERROR_MESSAGES = {
    404: "not_found",
    405: "method_not_allowed",
}


def http_error_message_key(status_code: int) -> str:
    """Page message for a framework error status."""
    if status_code >= 500:
        return "server_error"
    return HTTP_ERROR_MESSAGES.get(status_code, "bad_request")


def init_sentry(settings: Settings) -> None:
    """Initialize Sentry for error tracking."""
    if not settings.sentry_dsn:
        return

    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=1.0 if settings.is_development else 0.1,
    )
    logger.info("Sentry initialized")


def build_services(
    settings: Settings,
    *,
    mailing_list: MailingList | None = None,
    email_backend: EmailBackend | None = None,
    clock: Callable[[], float] = time.time,
) -> AppServices:
    """Wire up the stores, guards and providers for one application."""
    ui_strings = merge_ui_strings(UI_STRINGS, settings.ui_strings)

    token_store = TokenStore(
        ttls={
            TokenKind.CSRF: settings.csrf_token_ttl_seconds,
            TokenKind.SUBSCRIBE: settings.confirmation_token_ttl_seconds,
            TokenKind.UNSUBSCRIBE: settings.confirmation_token_ttl_seconds,
        },
        clock=clock,
    )
    rate_limiter = SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
        clock=clock,
    )
    csrf = CSRFGuard(token_store)

    if mailing_list is None:
        mailing_list = MailgunMailingList(
            api_key=settings.mailgun_api_key,
            list_id=settings.mailgun_list_id,
            endpoint=settings.mailgun_api_endpoint,
            timeout=settings.http_timeout,
        )

    email_service = EmailService(
        email_backend or get_email_backend(settings),
        ui_strings,
        list_description=settings.list_description,
    )
    workflow = ConfirmationWorkflow(
        token_store,
        mailing_list,
        email_service,
        confirm_endpoint=build_confirmation_endpoint(settings.public_url, settings.base_path),
    )

    return AppServices(
        settings=settings,
        ui_strings=ui_strings,
        token_store=token_store,
        rate_limiter=rate_limiter,
        csrf=csrf,
        mailing_list=mailing_list,
        workflow=workflow,
        pipeline=SubmissionPipeline(csrf, rate_limiter, workflow),
    )


def create_app(
    settings: Settings | None = None,
    *,
    mailing_list: MailingList | None = None,
    email_backend: EmailBackend | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create the application.

    Every call builds fresh token, rate limit and provider state, so tests
    can create isolated apps and inject fake providers and clocks.
    """
    settings = settings or get_settings()
    init_sentry(settings)

    services = build_services(
        settings,
        mailing_list=mailing_list,
        email_backend=email_backend,
        clock=clock,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        logger.info(
            f"Serving {settings.list_description or '[unnamed list]'} "
            f"at {settings.public_url}{settings.base_path}"
        )
        yield
        # Shutdown
        await services.mailing_list.close()

    app = FastAPI(
        title="Subscribe",
        description="Double opt-in subscription pages for a Mailgun mailing list",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.services = services

    # Last added runs first: request IDs are assigned before anything logs
    app.add_middleware(SecurityHeadersMiddleware)  # type: ignore[arg-type]
    app.add_middleware(RequestLoggingMiddleware)  # type: ignore[arg-type]
    app.add_middleware(RequestIDMiddleware)  # type: ignore[arg-type]

    app.include_router(build_router(settings.base_path))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Render framework errors (unknown paths, wrong methods) as HTML pages."""
        message_key = http_error_message_key(exc.status_code)
        return message_response(
            services,
            get_language(request),
            exc.status_code,
            "error",
            message_key,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        return server_error_response(services, get_language(request), request, exc)

    return app


if __name__ == "__main__":
    import uvicorn

    from subscribe.logging import get_uvicorn_log_config, setup_logging

    settings = get_settings()
    setup_logging(settings)
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.port,
        log_config=get_uvicorn_log_config(settings),
    )
