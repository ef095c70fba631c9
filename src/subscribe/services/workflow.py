"""Double opt-in confirmation workflow.

A request to join or leave the list never touches the provider directly:

    received -> checked -> (already | token_issued) -> (mail_sent | mail_failed)

Only a later visit to the emailed link performs the real change:

    token_issued -> (confirmed | expired_or_invalid)

External failures (provider or SMTP) are turned into outcomes here and never
propagate to the request handlers.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import assert_never

from subscribe.services.atomic import AtomicRef
from subscribe.services.email import EmailError, EmailService
from subscribe.services.mailing_list import MailingList, MailingListError, RemoveResult
from subscribe.services.tokens import TokenKind, TokenStore
from subscribe.strings import DEFAULT_LANGUAGE
from subscribe.urls import confirmation_link

logger = logging.getLogger(__name__)

# Log a running total every this many confirmed subscriptions
SUBSCRIPTION_LOG_EVERY = 10


class Action(str, Enum):
    """What a visitor asked for."""

    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"

    @property
    def token_kind(self) -> TokenKind:
        if self is Action.SUBSCRIBE:
            return TokenKind.SUBSCRIBE
        elif self is Action.UNSUBSCRIBE:
            return TokenKind.UNSUBSCRIBE
        else:
            assert_never(self)


class StartOutcome(str, Enum):
    ALREADY_SUBSCRIBED = "already_subscribed"
    NOT_SUBSCRIBED = "not_subscribed"
    CONFIRMATION_SENT = "confirmation_sent"
    CONFIRMATION_FAILED = "confirmation_failed"


class ConfirmOutcome(str, Enum):
    SUBSCRIPTION_CONFIRMED = "subscription_confirmation_success"
    UNSUBSCRIPTION_CONFIRMED = "unsubscription_confirmation_success"
    NOT_SUBSCRIBED = "not_subscribed"
    INVALID_TOKEN = "invalid_token"
    CONFIRMATION_FAILED = "confirmation_failed"


@dataclass
class StartResult:
    """Outcome of a subscribe/unsubscribe request."""

    outcome: StartOutcome
    action: Action
    email: str
    # Underlying failure, for logs only
    error: str | None = None


@dataclass
class ConfirmResult:
    """Outcome of following a confirmation link."""

    outcome: ConfirmOutcome
    action: Action | None = None
    email: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome in (
            ConfirmOutcome.SUBSCRIPTION_CONFIRMED,
            ConfirmOutcome.UNSUBSCRIPTION_CONFIRMED,
        )


def action_for_kind(kind: TokenKind) -> Action | None:
    """Map a confirmation token kind back to its action."""
    if kind is TokenKind.SUBSCRIBE:
        return Action.SUBSCRIBE
    elif kind is TokenKind.UNSUBSCRIBE:
        return Action.UNSUBSCRIBE
    elif kind is TokenKind.CSRF:
        return None
    else:
        assert_never(kind)


class ConfirmationWorkflow:
    """Ties the token store to the mailing list provider and email sender.

    Args:
        store: Token store holding pending confirmations
        mailing_list: Mailing list provider
        email_service: Sends the confirmation emails
        confirm_endpoint: Absolute URL of the confirmation endpoint; the
            token is appended as a query parameter
    """

    def __init__(
        self,
        store: TokenStore,
        mailing_list: MailingList,
        email_service: EmailService,
        confirm_endpoint: str,
    ) -> None:
        self.store = store
        self.mailing_list = mailing_list
        self.email_service = email_service
        self.confirm_endpoint = confirm_endpoint
        self._confirmed_subscriptions: AtomicRef[int] = AtomicRef(0)

    async def start(
        self,
        action: Action,
        email: str,
        lang: str = DEFAULT_LANGUAGE,
    ) -> StartResult:
        """Handle a validated subscribe or unsubscribe request.

        Checks membership first, then issues a token and emails the link.
        Nothing changes on the provider side until the link is followed.
        Calling this twice issues two independent tokens.
        """
        logger.info(f"Handling {action.value} request for: {email}")

        try:
            member = await self.mailing_list.is_member(email)
        except MailingListError as e:
            logger.error(f"Membership check failed for {email}: {e}")
            return StartResult(StartOutcome.CONFIRMATION_FAILED, action, email, error=str(e))

        if action is Action.SUBSCRIBE:
            if member:
                return StartResult(StartOutcome.ALREADY_SUBSCRIBED, action, email)
        elif action is Action.UNSUBSCRIBE:
            if not member:
                return StartResult(StartOutcome.NOT_SUBSCRIBED, action, email)
        else:
            assert_never(action)

        token = self.store.issue(action.token_kind, email)
        confirm_url = confirmation_link(self.confirm_endpoint, token)

        try:
            await self.email_service.send_confirmation(
                to=email,
                action=action.value,
                confirm_url=confirm_url,
                lang=lang,
            )
        except EmailError as e:
            logger.error(f"Failed to send {action.value} confirmation email to {email}: {e}")
            return StartResult(StartOutcome.CONFIRMATION_FAILED, action, email, error=str(e))

        return StartResult(StartOutcome.CONFIRMATION_SENT, action, email)

    async def confirm(self, token_key: str | None) -> ConfirmResult:
        """Apply the change a confirmation token stands for.

        The token is only consumed after the provider call succeeds, so a
        failed call can be retried by visiting the same link. If two visits
        race, only the one that consumes the token reports success.
        """
        token = self.store.validate(token_key)
        if token is None:
            logger.info("Invalid or expired confirmation token")
            return ConfirmResult(ConfirmOutcome.INVALID_TOKEN)

        action = action_for_kind(token.kind)
        if action is None:
            logger.warning(f"Token of kind {token.kind.value} used as confirmation link")
            return ConfirmResult(ConfirmOutcome.INVALID_TOKEN)

        email = token.payload

        try:
            if action is Action.SUBSCRIBE:
                await self.mailing_list.add_member(email)
                outcome = ConfirmOutcome.SUBSCRIPTION_CONFIRMED
            elif action is Action.UNSUBSCRIBE:
                removed = await self.mailing_list.remove_member(email)
                if removed is RemoveResult.NOT_FOUND:
                    outcome = ConfirmOutcome.NOT_SUBSCRIBED
                else:
                    outcome = ConfirmOutcome.UNSUBSCRIPTION_CONFIRMED
            else:
                assert_never(action)
        except MailingListError as e:
            logger.error(f"Confirmation of {action.value} for {email} failed: {e}")
            return ConfirmResult(ConfirmOutcome.CONFIRMATION_FAILED, action, email, error=str(e))

        if self.store.consume(token_key, expected_kind=token.kind) is None:
            logger.info(f"Confirmation token for {email} was already used")
            return ConfirmResult(ConfirmOutcome.INVALID_TOKEN)

        if outcome is ConfirmOutcome.SUBSCRIPTION_CONFIRMED:
            self._count_subscription()

        return ConfirmResult(outcome, action, email)

    def _count_subscription(self) -> None:
        _, total = self._confirmed_subscriptions.swap(lambda n: n + 1)
        if total % SUBSCRIPTION_LOG_EVERY == 0:
            logger.info(f"{total} new subscriptions")
