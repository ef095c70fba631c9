"""Shared API utilities."""

import logging

from fastapi import Request
from fastapi.responses import HTMLResponse

from subscribe.api.deps import AppServices
from subscribe.api.middleware import SECURITY_HEADERS, get_request_id
from subscribe.api.pages import render_message

logger = logging.getLogger(__name__)


def message_response(
    services: AppServices,
    lang: str,
    status_code: int,
    message_type: str,
    message_key: str,
    headers: dict[str, str] | None = None,
    **values: str,
) -> HTMLResponse:
    """Render a result page as a response.

    Examples:
        message_response(services, "en", 429, "error", "rate_limited")
        message_response(services, "fr", 200, "info", "confirmation_sent", email=email)
    """
    body = render_message(
        services.strings(lang),
        lang,
        services.settings.mailgun_list_name,
        message_type,
        message_key,
        home_path=services.path(),
        **values,
    )
    return HTMLResponse(body, status_code=status_code, headers=headers)


def server_error_response(
    services: AppServices,
    lang: str,
    request: Request,
    error: Exception,
) -> HTMLResponse:
    """Log an unexpected failure with request context and render a generic 500.

    The response carries the security headers and request ID itself, since
    the top-level exception handler runs outside the middleware stack.
    """
    logger.error(
        f"Unexpected error handling {request.method} {request.url.path}: {error!r}",
        exc_info=error,
    )
    headers = dict(SECURITY_HEADERS)
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    if request_id:
        headers["X-Request-ID"] = request_id
    return message_response(services, lang, 500, "error", "server_error", headers=headers)
