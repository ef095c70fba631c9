"""Token count, robots.txt, error page and base path tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from subscribe.api.deps import get_services
from subscribe.main import create_app
from subscribe.services.tokens import HOUR, TokenKind
from tests.conftest import (
    FakeClock,
    FakeMailingList,
    RecordingEmailBackend,
    confirmation_token_from,
    fetch_csrf_token,
    make_settings,
)


@pytest.mark.asyncio
async def test_token_count(client: AsyncClient, services):
    services.token_store.issue(TokenKind.SUBSCRIBE, "jane@example.com")
    services.token_store.issue(TokenKind.UNSUBSCRIBE, "john@example.com")

    response = await client.get("/tokens")

    assert response.status_code == 200
    assert "Available confirmation tokens" in response.text
    assert "Currently there are 2 pending confirmation tokens." in response.text


@pytest.mark.asyncio
async def test_token_count_excludes_expired(client: AsyncClient, services, clock: FakeClock):
    services.token_store.issue(TokenKind.CSRF, "127.0.0.1")
    clock.advance(8 * HOUR)

    response = await client.get("/tokens")

    assert "Currently there are 0 pending confirmation tokens." in response.text


@pytest.mark.asyncio
async def test_robots_txt(client: AsyncClient):
    response = await client.get("/robots.txt")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "User-agent: *\nDisallow: /"


@pytest.mark.asyncio
async def test_not_found(client: AsyncClient):
    response = await client.get("/nope")

    assert response.status_code == 404
    assert response.headers["content-type"].startswith("text/html")
    assert "Resource not found." in response.text


@pytest.mark.asyncio
async def test_not_found_in_french(client: AsyncClient):
    response = await client.get("/nope", headers={"Accept-Language": "fr"})

    assert response.status_code == 404
    assert "Page introuvable" in response.text


class TestBasePath:
    @pytest.fixture
    async def prefixed_client(self, mailing_list, email_backend, clock):
        app = create_app(
            make_settings(base_path="newsletter/", base_url="https://example.org/"),
            mailing_list=mailing_list,
            email_backend=email_backend,
            clock=clock,
        )
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac

    @pytest.mark.asyncio
    async def test_routes_are_prefixed(self, prefixed_client: AsyncClient):
        response = await prefixed_client.get("/newsletter/")

        assert response.status_code == 200
        assert 'action="/newsletter/subscribe"' in response.text

        assert (await prefixed_client.get("/newsletter/robots.txt")).status_code == 200
        assert (await prefixed_client.get("/subscribe")).status_code == 404

    @pytest.mark.asyncio
    async def test_confirmation_link_includes_base_path(
        self,
        prefixed_client: AsyncClient,
        mailing_list: FakeMailingList,
        email_backend: RecordingEmailBackend,
    ):
        csrf_token = await fetch_csrf_token(prefixed_client, "/newsletter/")

        response = await prefixed_client.post(
            "/newsletter/subscribe",
            data={"email": "jane@example.com", "csrf_token": csrf_token},
        )
        assert response.status_code == 200
        assert 'href="/newsletter"' in response.text
        assert "https://example.org/newsletter/confirm?token=" in email_backend.last["text"]

        token = confirmation_token_from(email_backend.last)
        response = await prefixed_client.get("/newsletter/confirm", params={"token": token})

        assert response.status_code == 200
        assert "jane@example.com" in mailing_list.members


@pytest.mark.asyncio
async def test_method_not_allowed(client: AsyncClient):
    response = await client.put("/")

    assert response.status_code == 405
    assert "GET" in response.headers["allow"]
    assert "Method Not Allowed" in response.text
    assert "Resource not found." not in response.text
    assert response.headers["x-frame-options"] == "DENY"


@pytest.mark.asyncio
async def test_method_not_allowed_in_french(client: AsyncClient):
    response = await client.get("/subscribe", headers={"Accept-Language": "fr"})

    assert response.status_code == 405
    assert "Méthode non autorisée" in response.text


class TestUnhandledError:
    @pytest.fixture
    async def failing_client(self, app):
        def broken_services():
            raise RuntimeError("services unavailable")

        app.dependency_overrides[get_services] = broken_services
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

    @pytest.mark.asyncio
    async def test_renders_server_error_page(self, failing_client: AsyncClient):
        response = await failing_client.get("/")

        assert response.status_code == 500
        assert "An unexpected error occurred" in response.text
        assert "services unavailable" not in response.text

    @pytest.mark.asyncio
    async def test_carries_security_headers(self, failing_client: AsyncClient):
        response = await failing_client.get("/", headers={"X-Request-ID": "req-500"})

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
        assert "frame-ancestors 'none'" in response.headers["content-security-policy"]
        assert response.headers["x-request-id"] == "req-500"
