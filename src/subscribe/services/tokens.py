"""In-memory store for expiring, typed confirmation and CSRF tokens."""

import logging
import secrets
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

from subscribe.services.atomic import AtomicRef

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

HOUR = 60 * 60

# 32 random bytes, 256 bits of entropy
TOKEN_BYTES = 32

# How often sweep_if_due() actually sweeps
CLEANUP_INTERVAL_SECONDS = HOUR


class TokenKind(str, Enum):
    """What a token authorizes."""

    CSRF = "csrf"
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


DEFAULT_TTLS: dict[TokenKind, float] = {
    TokenKind.CSRF: 8 * HOUR,
    TokenKind.SUBSCRIBE: 24 * HOUR,
    TokenKind.UNSUBSCRIBE: 24 * HOUR,
}


@dataclass(frozen=True)
class Token:
    """A stored token record.

    ``payload`` is the email address for subscribe/unsubscribe tokens and the
    client identity for CSRF tokens.
    """

    kind: TokenKind
    payload: str
    created_at: float
    expires_at: float

    def is_live(self, now: float) -> bool:
        return now < self.expires_at


def generate_token_key() -> str:
    """Generate a URL-safe random token key."""
    return secrets.token_urlsafe(TOKEN_BYTES)


class TokenStore:
    """Thread-safe token store.

    The whole mapping is replaced on every write through an ``AtomicRef``,
    so concurrent issue/validate/sweep calls never observe a partial update
    and never lose unrelated entries. A consumed or expired token looks
    exactly like one that never existed.
    """

    def __init__(
        self,
        ttls: Mapping[TokenKind, float] | None = None,
        clock: Clock = time.time,
        cleanup_interval: float = CLEANUP_INTERVAL_SECONDS,
    ) -> None:
        self._ttls = {**DEFAULT_TTLS, **(ttls or {})}
        self._clock = clock
        self._cleanup_interval = cleanup_interval
        self._tokens: AtomicRef[dict[str, Token]] = AtomicRef({})
        self._last_cleanup: AtomicRef[float] = AtomicRef(clock())

    def ttl(self, kind: TokenKind) -> float:
        return self._ttls[kind]

    def issue(self, kind: TokenKind, payload: str) -> str:
        """Create a token and return its key."""
        key = generate_token_key()
        now = self._clock()
        token = Token(
            kind=kind,
            payload=payload,
            created_at=now,
            expires_at=now + self._ttls[kind],
        )
        self._tokens.swap(lambda tokens: {**tokens, key: token})
        logger.debug(f"Created {kind.value} token")
        return key

    def validate(
        self,
        key: str | None,
        expected_kind: TokenKind | None = None,
        consume: bool = False,
    ) -> Token | None:
        """Look up a live token.

        Args:
            key: Token key as presented by the client
            expected_kind: Reject tokens of any other kind when given
            consume: Remove the token as part of a successful validation

        Returns:
            The token record, or None if it is missing, expired or of the
            wrong kind. When ``consume`` is set, at most one caller ever gets
            the record back for a given key.
        """
        if not isinstance(key, str) or not key:
            return None

        while True:
            current = self._tokens.get()
            token = current.get(key)
            now = self._clock()
            if token is None or not token.is_live(now):
                return None
            if expected_kind is not None and token.kind != expected_kind:
                return None
            if not consume:
                return token

            remaining = {k: v for k, v in current.items() if k != key}
            if self._tokens.compare_and_set(current, remaining):
                logger.debug(f"Consumed {token.kind.value} token")
                return token

    def consume(self, key: str | None, expected_kind: TokenKind | None = None) -> Token | None:
        """Validate and remove a token in one step."""
        return self.validate(key, expected_kind=expected_kind, consume=True)

    def find(self, kind: TokenKind, payload: str) -> str | None:
        """Return the key of the first live token with this kind and payload."""
        now = self._clock()
        for key, token in self._tokens.get().items():
            if token.kind == kind and token.payload == payload and token.is_live(now):
                return key
        return None

    def count(self) -> int:
        """Number of live tokens."""
        now = self._clock()
        return sum(1 for token in self._tokens.get().values() if token.is_live(now))

    def sweep(self) -> int:
        """Remove every expired token.

        Returns:
            Number of tokens removed
        """
        now = self._clock()
        old, new = self._tokens.swap(
            lambda tokens: {k: v for k, v in tokens.items() if v.is_live(now)}
        )
        removed = len(old) - len(new)
        if removed:
            logger.debug(f"Swept {removed} expired tokens")
        return removed

    def sweep_if_due(self) -> int:
        """Sweep when the cleanup interval has elapsed since the last sweep."""
        now = self._clock()
        last = self._last_cleanup.get()
        if now - last <= self._cleanup_interval:
            return 0
        # Only the caller that wins the timestamp update runs the sweep
        if not self._last_cleanup.compare_and_set(last, now):
            return 0
        return self.sweep()

    def reset(self) -> None:
        """Drop every token. Useful for testing."""
        self._tokens.reset({})

    def __len__(self) -> int:
        return len(self._tokens.get())
