import pytest

from media_server.core.security.rate_limiter import RateLimiter, RateLimitRule


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter([RateLimitRule("upload", limit=3, window_seconds=60)], clock=clock)


def test_burst_up_to_limit_then_denied(limiter):
    results = [limiter.check("upload")[0] for _ in range(4)]

    assert results == [True, True, True, False]


def test_retry_after_reflects_refill_rate(limiter):
    for _ in range(3):
        limiter.check("upload")

    allowed, retry_after = limiter.check("upload")

    assert allowed is False
    # 3 per 60s -> one token every 20s
    assert retry_after == pytest.approx(20.0)


def test_tokens_refill_over_time(limiter, clock):
    for _ in range(3):
        limiter.check("upload")

    clock.now += 20
    assert limiter.check("upload") == (True, 0.0)
    assert limiter.check("upload")[0] is False


def test_rules_are_independent(clock):
    limiter = RateLimiter(
        [RateLimitRule("upload", 1, 60), RateLimitRule("api", 100, 60)],
        clock=clock,
    )

    limiter.check("upload")

    assert limiter.check("upload")[0] is False
    assert limiter.check("api")[0] is True
    assert limiter.stats() == {
        "upload": {"allowed": 1, "denied": 1},
        "api": {"allowed": 1, "denied": 0},
    }


def test_unknown_rule(limiter):
    with pytest.raises(KeyError):
        limiter.check("nope")
