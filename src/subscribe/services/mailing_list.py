"""Mailing list provider client (Mailgun mailing lists API)."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

DEFAULT_MAILGUN_ENDPOINT = "https://api.mailgun.net/v3"


class MailingListError(Exception):
    """A mailing list provider call failed or timed out."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RemoveResult(str, Enum):
    """Outcome of removing a member."""

    REMOVED = "removed"
    NOT_FOUND = "not_found"


class MailingList(ABC):
    """Operations the subscription workflow needs from the provider.

    All calls are idempotent and raise ``MailingListError`` on failure.
    """

    @abstractmethod
    async def is_member(self, email: str) -> bool:
        """Check whether an address is currently on the list."""

    @abstractmethod
    async def add_member(self, email: str) -> None:
        """Add (or re-subscribe) an address."""

    @abstractmethod
    async def remove_member(self, email: str) -> RemoveResult:
        """Remove an address from the list."""

    async def close(self) -> None:
        """Release any held connections."""


class MailgunMailingList(MailingList):
    """Mailgun implementation using its HTTP API with basic auth."""

    def __init__(
        self,
        api_key: str,
        list_id: str,
        endpoint: str = DEFAULT_MAILGUN_ENDPOINT,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.list_id = list_id
        self.endpoint = endpoint.rstrip("/")
        self._client = client or httpx.AsyncClient(
            auth=("api", api_key),
            timeout=timeout,
        )

    def _members_url(self) -> str:
        return f"{self.endpoint}/lists/{self.list_id}/members"

    def _member_url(self, email: str) -> str:
        return f"{self._members_url()}/{quote(email, safe='')}"

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Mailgun {method} error for {url}: {e!r}")
            raise MailingListError(f"Connection error: {e!r}") from e
        logger.debug(f"Mailgun {method} {url} -> {response.status_code}")
        return response

    async def is_member(self, email: str) -> bool:
        logger.info(f"Checking if email is already subscribed: {email}")
        response = await self._request("GET", self._member_url(email))
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise MailingListError(
            f"Membership check failed with status {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )

    async def add_member(self, email: str) -> None:
        logger.info(f"Subscribing email to Mailgun: {email}")
        response = await self._request(
            "POST",
            self._members_url(),
            data={"address": email, "subscribed": "yes", "upsert": "yes"},
        )
        if response.status_code >= 300:
            logger.error(
                f"Failed to subscribe {email} - Status: {response.status_code} - {response.text}"
            )
            raise MailingListError(
                "Failed to subscribe. Please try again later.",
                status_code=response.status_code,
                body=response.text,
            )
        logger.info(f"Successfully subscribed email: {email}")

    async def remove_member(self, email: str) -> RemoveResult:
        logger.info(f"Attempting to unsubscribe email: {email}")
        response = await self._request("DELETE", self._member_url(email))
        if response.status_code < 300:
            logger.info(f"Successfully unsubscribed email: {email}")
            return RemoveResult.REMOVED
        if response.status_code == 404:
            logger.info(f"Email not found for unsubscription: {email}")
            return RemoveResult.NOT_FOUND
        logger.error(
            f"Failed to unsubscribe {email} - Status: {response.status_code} - {response.text}"
        )
        raise MailingListError(
            "Failed to unsubscribe. Please try again later.",
            status_code=response.status_code,
            body=response.text,
        )

    async def close(self) -> None:
        await self._client.aclose()
