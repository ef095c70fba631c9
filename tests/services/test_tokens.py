"""Token store tests."""

import threading

from subscribe.services.atomic import AtomicRef
from subscribe.services.tokens import HOUR, TokenKind, TokenStore, generate_token_key
from tests.conftest import FakeClock


class TestGenerateTokenKey:
    def test_url_safe_and_long(self):
        key = generate_token_key()
        assert len(key) >= 43
        assert all(c.isalnum() or c in "-_" for c in key)

    def test_unique(self):
        keys = {generate_token_key() for _ in range(1000)}
        assert len(keys) == 1000


class TestTokenStore:
    def test_issue_and_validate(self, token_store: TokenStore):
        key = token_store.issue(TokenKind.SUBSCRIBE, "jane@example.com")

        token = token_store.validate(key)

        assert token is not None
        assert token.kind is TokenKind.SUBSCRIBE
        assert token.payload == "jane@example.com"

    def test_validate_does_not_consume(self, token_store: TokenStore):
        key = token_store.issue(TokenKind.SUBSCRIBE, "jane@example.com")

        assert token_store.validate(key) is not None
        assert token_store.validate(key) is not None

    def test_validate_unknown_or_missing_key(self, token_store: TokenStore):
        assert token_store.validate("does-not-exist") is None
        assert token_store.validate("") is None
        assert token_store.validate(None) is None

    def test_validate_wrong_kind(self, token_store: TokenStore):
        key = token_store.issue(TokenKind.CSRF, "127.0.0.1")

        assert token_store.validate(key, expected_kind=TokenKind.SUBSCRIBE) is None
        assert token_store.validate(key, expected_kind=TokenKind.CSRF) is not None

    def test_consume_only_once(self, token_store: TokenStore):
        key = token_store.issue(TokenKind.UNSUBSCRIBE, "jane@example.com")

        assert token_store.consume(key) is not None
        assert token_store.consume(key) is None
        assert token_store.validate(key) is None

    def test_consume_wrong_kind_keeps_token(self, token_store: TokenStore):
        key = token_store.issue(TokenKind.SUBSCRIBE, "jane@example.com")

        assert token_store.consume(key, expected_kind=TokenKind.UNSUBSCRIBE) is None
        assert token_store.validate(key) is not None

    def test_expiry_per_kind(self, clock: FakeClock, token_store: TokenStore):
        csrf = token_store.issue(TokenKind.CSRF, "127.0.0.1")
        confirm = token_store.issue(TokenKind.SUBSCRIBE, "jane@example.com")

        clock.advance(8 * HOUR)
        assert token_store.validate(csrf) is None
        assert token_store.validate(confirm) is not None

        clock.advance(16 * HOUR)
        assert token_store.validate(confirm) is None

    def test_just_before_expiry_is_live(self, clock: FakeClock, token_store: TokenStore):
        key = token_store.issue(TokenKind.SUBSCRIBE, "jane@example.com")

        clock.advance(24 * HOUR - 1)

        assert token_store.validate(key) is not None

    def test_custom_ttls(self, clock: FakeClock):
        store = TokenStore(ttls={TokenKind.CSRF: 60}, clock=clock)
        key = store.issue(TokenKind.CSRF, "127.0.0.1")

        assert store.ttl(TokenKind.CSRF) == 60
        assert store.ttl(TokenKind.SUBSCRIBE) == 24 * HOUR
        clock.advance(60)
        assert store.validate(key) is None

    def test_duplicate_pending_tokens_are_independent(self, token_store: TokenStore):
        first = token_store.issue(TokenKind.SUBSCRIBE, "jane@example.com")
        second = token_store.issue(TokenKind.SUBSCRIBE, "jane@example.com")

        assert first != second
        assert token_store.consume(first) is not None
        assert token_store.validate(second) is not None

    def test_find(self, clock: FakeClock, token_store: TokenStore):
        key = token_store.issue(TokenKind.CSRF, "10.0.0.1")

        assert token_store.find(TokenKind.CSRF, "10.0.0.1") == key
        assert token_store.find(TokenKind.CSRF, "10.0.0.2") is None
        assert token_store.find(TokenKind.SUBSCRIBE, "10.0.0.1") is None

        clock.advance(8 * HOUR)
        assert token_store.find(TokenKind.CSRF, "10.0.0.1") is None

    def test_count_ignores_expired(self, clock: FakeClock, token_store: TokenStore):
        token_store.issue(TokenKind.CSRF, "127.0.0.1")
        token_store.issue(TokenKind.SUBSCRIBE, "jane@example.com")
        assert token_store.count() == 2

        clock.advance(8 * HOUR)

        assert token_store.count() == 1
        assert len(token_store) == 2

    def test_sweep(self, clock: FakeClock, token_store: TokenStore):
        token_store.issue(TokenKind.CSRF, "127.0.0.1")
        kept = token_store.issue(TokenKind.SUBSCRIBE, "jane@example.com")
        clock.advance(8 * HOUR)

        assert token_store.sweep() == 1
        assert len(token_store) == 1
        assert token_store.validate(kept) is not None

    def test_sweep_if_due(self, clock: FakeClock):
        store = TokenStore(ttls={TokenKind.CSRF: 10}, clock=clock, cleanup_interval=HOUR)
        store.issue(TokenKind.CSRF, "127.0.0.1")
        clock.advance(30)

        # Expired, but the interval has not elapsed yet
        assert store.sweep_if_due() == 0
        assert len(store) == 1

        clock.advance(HOUR)
        assert store.sweep_if_due() == 1
        assert len(store) == 0
        assert store.sweep_if_due() == 0

    def test_reset(self, token_store: TokenStore):
        token_store.issue(TokenKind.CSRF, "127.0.0.1")
        token_store.reset()
        assert len(token_store) == 0

    def test_concurrent_consume_single_winner(self, token_store: TokenStore):
        key = token_store.issue(TokenKind.SUBSCRIBE, "jane@example.com")
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(token_store.consume(key))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(1 for r in results if r is not None) == 1

    def test_concurrent_issue_loses_nothing(self, token_store: TokenStore):
        def worker(n: int):
            for i in range(50):
                token_store.issue(TokenKind.SUBSCRIBE, f"user{n}-{i}@example.com")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert token_store.count() == 400


class TestAtomicRef:
    def test_compare_and_set_by_identity(self):
        value = {"a": 1}
        ref = AtomicRef(value)

        assert ref.compare_and_set({"a": 1}, {}) is False
        assert ref.compare_and_set(value, {}) is True
        assert ref.get() == {}

    def test_swap_returns_old_and_new(self):
        ref = AtomicRef(1)

        old, new = ref.swap(lambda n: n + 1)

        assert (old, new) == (1, 2)
        assert ref.get() == 2
