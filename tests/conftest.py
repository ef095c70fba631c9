"""Pytest configuration and fixtures."""

import asyncio
import os
import re
from collections.abc import AsyncGenerator

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"

import pytest
from httpx import ASGITransport, AsyncClient

from subscribe.config import Settings
from subscribe.main import create_app
from subscribe.services.email import EmailBackend, EmailError, EmailService
from subscribe.services.mailing_list import MailingList, MailingListError, RemoveResult
from subscribe.services.tokens import TokenStore
from subscribe.services.workflow import ConfirmationWorkflow
from subscribe.strings import UI_STRINGS

START_TIME = 1_700_000_000.0

CSRF_FIELD = re.compile(r'name="csrf_token" value="([^"]+)"')
CONFIRM_LINK = re.compile(r"token=([A-Za-z0-9_=-]+)")


class FakeClock:
    """Manually advanced clock.

    Usage:
        clock = FakeClock()
        store = TokenStore(clock=clock)
        clock.advance(3600)
    """

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMailingList(MailingList):
    """In-memory provider that records every call."""

    def __init__(self, members: set[str] | None = None) -> None:
        self.members = set(members or ())
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()
        self.closed = False

    def _record(self, operation: str, email: str) -> None:
        self.calls.append((operation, email))
        if operation in self.fail_on:
            raise MailingListError(f"{operation} failed", status_code=500)

    async def is_member(self, email: str) -> bool:
        await asyncio.sleep(0)
        self._record("is_member", email)
        return email in self.members

    async def add_member(self, email: str) -> None:
        await asyncio.sleep(0)
        self._record("add_member", email)
        self.members.add(email)

    async def remove_member(self, email: str) -> RemoveResult:
        await asyncio.sleep(0)
        self._record("remove_member", email)
        if email not in self.members:
            return RemoveResult.NOT_FOUND
        self.members.discard(email)
        return RemoveResult.REMOVED

    async def close(self) -> None:
        self.closed = True

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)


class RecordingEmailBackend(EmailBackend):
    """Keeps sent messages in memory instead of delivering them."""

    def __init__(self) -> None:
        self.sent: list[dict[str, str | None]] = []
        self.fail = False

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> None:
        if self.fail:
            raise EmailError("SMTP unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})

    @property
    def last(self) -> dict[str, str | None]:
        return self.sent[-1]


def confirmation_token_from(message: dict[str, str | None]) -> str:
    """Extract the token from a recorded confirmation email."""
    match = CONFIRM_LINK.search(message["text"] or "")
    assert match, "no confirmation link in email"
    return match.group(1)


def make_settings(**overrides) -> Settings:
    values = {
        "mailgun_api_key": "key-test",
        "mailgun_list_id": "news@lists.example.com",
        "mailgun_list_name": "Example News",
        "base_url": "https://subscribe.example.com",
        "email_backend": "console",
        "environment": "test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mailing_list() -> FakeMailingList:
    return FakeMailingList()


@pytest.fixture
def email_backend() -> RecordingEmailBackend:
    return RecordingEmailBackend()


@pytest.fixture
def token_store(clock: FakeClock) -> TokenStore:
    return TokenStore(clock=clock)


@pytest.fixture
def workflow(
    token_store: TokenStore,
    mailing_list: FakeMailingList,
    email_backend: RecordingEmailBackend,
) -> ConfirmationWorkflow:
    email_service = EmailService(email_backend, UI_STRINGS, list_description="Example News")
    return ConfirmationWorkflow(
        token_store,
        mailing_list,
        email_service,
        confirm_endpoint="https://subscribe.example.com/confirm",
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings, mailing_list, email_backend, clock):
    return create_app(
        settings,
        mailing_list=mailing_list,
        email_backend=email_backend,
        clock=clock,
    )


@pytest.fixture
def services(app):
    return app.state.services


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


async def fetch_csrf_token(client: AsyncClient, path: str = "/", **kwargs) -> str:
    """Load the form page and return its CSRF token."""
    response = await client.get(path, **kwargs)
    assert response.status_code == 200
    match = CSRF_FIELD.search(response.text)
    assert match, "no csrf token in form"
    return match.group(1)
