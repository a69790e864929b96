"""Tests for the per-chat fixed-window rate limiter."""

from convertbot.services.rate_limiter import RateLimiter


def test_first_request_opens_window(limiter, clock):
    assert limiter.hit(1) is True

    state = limiter.state(1)
    assert state.count == 1
    assert state.window_start == clock.now


def test_eleventh_request_in_window_is_rejected(limiter, clock):
    results = []
    for _ in range(11):
        results.append(limiter.hit(1))
        clock.advance(1000)

    assert results[:10] == [True] * 10
    assert results[10] is False


def test_window_resets_after_it_elapses(limiter, clock):
    for _ in range(11):
        limiter.hit(1)

    clock.advance(60_001)

    assert limiter.hit(1) is True
    assert limiter.state(1).count == 1
    assert limiter.state(1).window_start == clock.now


def test_window_boundary_is_exclusive(limiter, clock):
    for _ in range(10):
        limiter.hit(1)

    clock.advance(60_000)

    # Exactly one window later still counts against the old window
    assert limiter.hit(1) is False


def test_chats_are_independent(limiter):
    for _ in range(11):
        limiter.hit(1)

    assert limiter.hit(2) is True


def test_custom_limits(clock):
    limiter = RateLimiter(window_ms=1000, max_requests=2, clock=clock)

    assert [limiter.hit(1) for _ in range(3)] == [True, True, False]


class TestLanguagePreference:
    """Language stored alongside rate limit state."""

    def test_new_chat_gets_default_language(self, limiter):
        assert limiter.language(42) == "zh"
        assert limiter.state(42).language == "zh"
        assert limiter.state(42).count == 0

    def test_language_lookup_does_not_register_chat(self, limiter, clock):
        limiter.language(42)
        clock.advance(5000)

        assert limiter.state(42).window_start == clock.now

    def test_set_language_keeps_counter(self, limiter):
        limiter.hit(42)
        limiter.set_language(42, "en")

        assert limiter.language(42) == "en"
        assert limiter.state(42).count == 1
