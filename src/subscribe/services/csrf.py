"""CSRF tokens bound to a client identity."""

import hmac
import logging

from subscribe.services.tokens import TokenKind, TokenStore

logger = logging.getLogger(__name__)


class CSRFGuard:
    """Issues and checks CSRF tokens stored in a ``TokenStore``.

    A client keeps the same token for the whole token lifetime, so reloading
    the form does not invalidate a form already open in another tab. Tokens
    are never consumed on use.
    """

    def __init__(self, store: TokenStore) -> None:
        self.store = store

    def get_or_issue(self, client_identity: str) -> str:
        """Return this client's live CSRF token, issuing one if needed."""
        existing = self.store.find(TokenKind.CSRF, client_identity)
        if existing is not None:
            return existing
        return self.store.issue(TokenKind.CSRF, client_identity)

    def verify(self, key: str | None, client_identity: str) -> bool:
        """Check a submitted token against the client that presents it."""
        token = self.store.validate(key, expected_kind=TokenKind.CSRF)
        if token is None:
            return False
        return hmac.compare_digest(token.payload.encode(), client_identity.encode())
