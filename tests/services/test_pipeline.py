"""Submission guard chain tests."""

import pytest

from subscribe.services.csrf import CSRFGuard
from subscribe.services.pipeline import (
    Rejection,
    SubmissionPipeline,
    SubscriptionForm,
    parse_action,
)
from subscribe.services.rate_limit import SlidingWindowRateLimiter
from subscribe.services.workflow import Action, StartOutcome
from tests.conftest import FakeMailingList, RecordingEmailBackend

CLIENT = "203.0.113.5"


@pytest.fixture
def csrf(token_store):
    return CSRFGuard(token_store)


@pytest.fixture
def rate_limiter(clock):
    return SlidingWindowRateLimiter(max_requests=3, clock=clock)


@pytest.fixture
def pipeline(csrf, rate_limiter, workflow):
    return SubmissionPipeline(csrf, rate_limiter, workflow)


def form(csrf_token, **overrides) -> SubscriptionForm:
    values = {"email": "jane@example.com", "csrf_token": csrf_token, "action": "subscribe"}
    values.update(overrides)
    return SubscriptionForm(**values)


async def test_accepted(pipeline, csrf, email_backend: RecordingEmailBackend):
    result = await pipeline.submit(form(csrf.get_or_issue(CLIENT)), CLIENT)

    assert result.rejection is None
    assert result.start.outcome is StartOutcome.CONFIRMATION_SENT
    assert result.rate_limit.remaining == 2
    assert len(email_backend.sent) == 1


async def test_email_is_normalized(pipeline, csrf, mailing_list: FakeMailingList):
    await pipeline.submit(form(csrf.get_or_issue(CLIENT), email="  Jane@Example.COM "), CLIENT)

    assert mailing_list.calls == [("is_member", "jane@example.com")]


async def test_csrf_checked_first(pipeline, rate_limiter, mailing_list: FakeMailingList):
    result = await pipeline.submit(form("forged", email="not-an-email", website="x"), CLIENT)

    assert result.rejection is Rejection.CSRF_INVALID
    assert mailing_list.calls == []
    # Rejected before the rate limiter saw it
    assert rate_limiter.tracked_clients() == 0


async def test_csrf_from_other_client(pipeline, csrf):
    result = await pipeline.submit(form(csrf.get_or_issue("198.51.100.1")), CLIENT)

    assert result.rejection is Rejection.CSRF_INVALID


async def test_rate_limit_before_honeypot(pipeline, csrf):
    token = csrf.get_or_issue(CLIENT)
    for _ in range(3):
        await pipeline.submit(form(token, website="spam"), CLIENT)

    result = await pipeline.submit(form(token, website="spam"), CLIENT)

    assert result.rejection is Rejection.RATE_LIMITED
    assert result.rate_limit is not None
    assert not result.rate_limit.allowed


async def test_honeypot_before_email_validation(pipeline, csrf, mailing_list: FakeMailingList):
    result = await pipeline.submit(
        form(csrf.get_or_issue(CLIENT), email="bogus", website="http://spam.example"), CLIENT
    )

    assert result.rejection is Rejection.SPAM_DETECTED
    assert mailing_list.calls == []


async def test_invalid_email(pipeline, csrf):
    result = await pipeline.submit(form(csrf.get_or_issue(CLIENT), email="jane@"), CLIENT)

    assert result.rejection is Rejection.INVALID_EMAIL
    assert result.email == "jane@"


async def test_unknown_action(pipeline, csrf, mailing_list: FakeMailingList):
    result = await pipeline.submit(form(csrf.get_or_issue(CLIENT), action="delete"), CLIENT)

    assert result.rejection is Rejection.UNKNOWN_ACTION
    assert mailing_list.calls == []


async def test_unsubscribe_dispatch(pipeline, csrf, mailing_list: FakeMailingList):
    mailing_list.members.add("jane@example.com")

    result = await pipeline.submit(form(csrf.get_or_issue(CLIENT), action="unsubscribe"), CLIENT)

    assert result.start.action is Action.UNSUBSCRIBE
    assert result.start.outcome is StartOutcome.CONFIRMATION_SENT


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, Action.SUBSCRIBE),
        ("", Action.SUBSCRIBE),
        ("subscribe", Action.SUBSCRIBE),
        (" Unsubscribe ", Action.UNSUBSCRIBE),
        ("delete", None),
    ],
)
def test_parse_action(value, expected):
    assert parse_action(value) is expected
