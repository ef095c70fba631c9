"""Subscription form, submission and confirmation endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Form, Query, Request, status
from fastapi.responses import HTMLResponse

from subscribe.api.deps import ClientIdentityDep, LanguageDep, ServicesDep
from subscribe.api.pages import render_index
from subscribe.api.utils import message_response, server_error_response
from subscribe.services.pipeline import Rejection, SubscriptionForm
from subscribe.services.rate_limit import rate_limit_headers
from subscribe.services.workflow import ConfirmOutcome, StartOutcome

logger = logging.getLogger(__name__)

router = APIRouter()

# Status code and alert style per rejection
REJECTION_RESPONSES: dict[Rejection, tuple[int, str]] = {
    Rejection.CSRF_INVALID: (status.HTTP_403_FORBIDDEN, "error"),
    Rejection.RATE_LIMITED: (status.HTTP_429_TOO_MANY_REQUESTS, "error"),
    Rejection.SPAM_DETECTED: (status.HTTP_400_BAD_REQUEST, "error"),
    Rejection.INVALID_EMAIL: (status.HTTP_400_BAD_REQUEST, "error"),
    Rejection.UNKNOWN_ACTION: (status.HTTP_400_BAD_REQUEST, "error"),
}

START_RESPONSES: dict[StartOutcome, tuple[int, str]] = {
    StartOutcome.ALREADY_SUBSCRIBED: (status.HTTP_200_OK, "success"),
    StartOutcome.NOT_SUBSCRIBED: (status.HTTP_200_OK, "warning"),
    StartOutcome.CONFIRMATION_SENT: (status.HTTP_200_OK, "info"),
    StartOutcome.CONFIRMATION_FAILED: (status.HTTP_400_BAD_REQUEST, "error"),
}

# Status code, alert style and message key per confirmation outcome
CONFIRM_RESPONSES: dict[ConfirmOutcome, tuple[int, str, str]] = {
    ConfirmOutcome.SUBSCRIPTION_CONFIRMED: (
        status.HTTP_200_OK,
        "success",
        "subscription_confirmation_success",
    ),
    ConfirmOutcome.UNSUBSCRIPTION_CONFIRMED: (
        status.HTTP_200_OK,
        "success",
        "unsubscription_confirmation_success",
    ),
    ConfirmOutcome.NOT_SUBSCRIBED: (status.HTTP_200_OK, "warning", "not_subscribed"),
    ConfirmOutcome.INVALID_TOKEN: (status.HTTP_400_BAD_REQUEST, "error", "confirmation_error"),
    ConfirmOutcome.CONFIRMATION_FAILED: (status.HTTP_400_BAD_REQUEST, "error", "operation_failed"),
}


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    services: ServicesDep,
    lang: LanguageDep,
    client_identity: ClientIdentityDep,
):
    """Render the form with this client's CSRF token."""
    try:
        services.token_store.sweep_if_due()
        csrf_token = services.csrf.get_or_issue(client_identity)
        body = render_index(
            services.strings(lang),
            lang,
            services.settings.mailgun_list_name,
            subscribe_path=services.path("subscribe"),
            csrf_token=csrf_token,
        )
        return HTMLResponse(body)
    except Exception as e:
        return server_error_response(services, lang, request, e)


@router.post("/subscribe", response_class=HTMLResponse)
async def subscribe(
    request: Request,
    services: ServicesDep,
    lang: LanguageDep,
    client_identity: ClientIdentityDep,
    email: Annotated[str | None, Form()] = None,
    csrf_token: Annotated[str | None, Form()] = None,
    website: Annotated[str | None, Form()] = None,
    action: Annotated[str | None, Form()] = None,
):
    """
    Request a subscription change.

    Runs the guard chain and, if it passes, emails a confirmation link.
    """
    try:
        form = SubscriptionForm(email=email, csrf_token=csrf_token, website=website, action=action)
        result = await services.pipeline.submit(form, client_identity, lang)

        if result.rejection is not None:
            status_code, message_type = REJECTION_RESPONSES[result.rejection]
            headers = None
            if result.rejection is Rejection.RATE_LIMITED and result.rate_limit is not None:
                headers = rate_limit_headers(
                    result.rate_limit, now=services.rate_limiter.now()
                )
            return message_response(
                services,
                lang,
                status_code,
                message_type,
                result.rejection.value,
                headers=headers,
                email=result.email,
            )

        start = result.start
        if start is None:
            raise RuntimeError(f"Submission for {result.email} was neither rejected nor started")
        if start.error:
            logger.info(f"{start.action.value} request for {start.email} failed: {start.error}")
        status_code, message_type = START_RESPONSES[start.outcome]
        return message_response(
            services,
            lang,
            status_code,
            message_type,
            start.outcome.value,
            email=start.email,
        )
    except Exception as e:
        return server_error_response(services, lang, request, e)


@router.get("/confirm", response_class=HTMLResponse)
async def confirm(
    request: Request,
    services: ServicesDep,
    lang: LanguageDep,
    token: Annotated[str | None, Query()] = None,
):
    """Follow a confirmation link from an email."""
    try:
        services.token_store.sweep_if_due()

        if not token or not token.strip():
            logger.warning("Missing token in confirmation request")
            return message_response(
                services, lang, status.HTTP_400_BAD_REQUEST, "error", "confirmation_error"
            )

        result = await services.workflow.confirm(token.strip())
        status_code, message_type, message_key = CONFIRM_RESPONSES[result.outcome]
        return message_response(
            services,
            lang,
            status_code,
            message_type,
            message_key,
            email=result.email or "",
        )
    except Exception as e:
        return server_error_response(services, lang, request, e)
