"""Guard chain in front of the subscription workflow."""

import logging
from dataclasses import dataclass
from enum import Enum

from subscribe.services.csrf import CSRFGuard
from subscribe.services.rate_limit import RateLimitResult, SlidingWindowRateLimiter
from subscribe.services.validation import honeypot_filled, is_valid_email, normalize_email
from subscribe.services.workflow import Action, ConfirmationWorkflow, StartResult
from subscribe.strings import DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)


class Rejection(str, Enum):
    """Why a submission was turned away, in guard order."""

    CSRF_INVALID = "csrf_invalid"
    RATE_LIMITED = "rate_limited"
    SPAM_DETECTED = "spam_detected"
    INVALID_EMAIL = "invalid_email"
    UNKNOWN_ACTION = "unknown_action"


@dataclass
class SubscriptionForm:
    """Raw form fields as submitted. Nothing here is trusted yet."""

    email: str | None = None
    csrf_token: str | None = None
    website: str | None = None
    action: str | None = None


@dataclass
class SubmissionResult:
    """Either a rejection or the workflow result, never both."""

    email: str
    rejection: Rejection | None = None
    start: StartResult | None = None
    rate_limit: RateLimitResult | None = None


def parse_action(value: str | None) -> Action | None:
    """Parse the submitted action, defaulting to subscribe when absent."""
    if value is None or not value.strip():
        return Action.SUBSCRIBE
    try:
        return Action(value.strip().lower())
    except ValueError:
        return None


class SubmissionPipeline:
    """Runs the guards for ``POST /subscribe`` and dispatches to the workflow.

    Guards run in a fixed order and stop at the first failure:
    CSRF, rate limit, honeypot, email validation, action.
    """

    def __init__(
        self,
        csrf: CSRFGuard,
        rate_limiter: SlidingWindowRateLimiter,
        workflow: ConfirmationWorkflow,
    ) -> None:
        self.csrf = csrf
        self.rate_limiter = rate_limiter
        self.workflow = workflow

    async def submit(
        self,
        form: SubscriptionForm,
        client_identity: str,
        lang: str = DEFAULT_LANGUAGE,
    ) -> SubmissionResult:
        email = normalize_email(form.email)

        if not self.csrf.verify(form.csrf_token, client_identity):
            logger.warning(f"CSRF token validation failed for {client_identity}")
            return SubmissionResult(email, rejection=Rejection.CSRF_INVALID)

        rate_limit = self.rate_limiter.check_and_record(client_identity)
        if not rate_limit.allowed:
            logger.warning(f"Rate limit exceeded for IP: {client_identity}")
            return SubmissionResult(email, rejection=Rejection.RATE_LIMITED, rate_limit=rate_limit)

        if honeypot_filled(form.website):
            logger.warning(f"Spam detected: honeypot field filled from IP: {client_identity}")
            return SubmissionResult(email, rejection=Rejection.SPAM_DETECTED)

        if not is_valid_email(email):
            logger.info(f"Invalid email submitted from {client_identity}: {email!r}")
            return SubmissionResult(email, rejection=Rejection.INVALID_EMAIL)

        action = parse_action(form.action)
        if action is None:
            logger.info(f"Unknown action submitted: {form.action!r}")
            return SubmissionResult(email, rejection=Rejection.UNKNOWN_ACTION)

        start = await self.workflow.start(action, email, lang)
        return SubmissionResult(email, start=start, rate_limit=rate_limit)
