from core.rate_limiting import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRateLimiter:
    """Fixed-window counting per identifier."""

    def test_allows_up_to_the_limit(self):
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=FakeClock())

        results = [limiter.hit("1.2.3.4:/api/votes") for _ in range(3)]
        assert all(result.allowed for result in results)
        assert [result.remaining for result in results] == [2, 1, 0]

    def test_blocks_over_the_limit(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)
        limiter.hit("client")
        limiter.hit("client")

        clock.now += 20
        result = limiter.hit("client")
        assert not result.allowed
        assert result.remaining == 0
        assert result.retry_after == 40
        assert result.reset_at == 1_700_000_060.0

    def test_window_resets(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.hit("client")
        assert not limiter.hit("client").allowed

        clock.now += 60
        result = limiter.hit("client")
        assert result.allowed
        assert result.reset_at == clock.now + 60

    def test_identifiers_are_independent(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        assert limiter.hit("a").allowed
        assert limiter.hit("b").allowed
        assert not limiter.hit("a").allowed

    def test_reset(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        limiter.hit("a")
        limiter.reset("a")
        assert limiter.hit("a").allowed

    def test_cleanup_old_entries(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
        limiter.hit("old")
        clock.now += 30
        limiter.hit("recent")

        clock.now += 31
        limiter.cleanup_old_entries()
        assert len(limiter) == 1

        limiter.reset_all()
        assert len(limiter) == 0

    def test_hits_sweep_closed_windows(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
        for i in range(5):
            limiter.hit(f"client:/api/path-{i}")
        assert len(limiter) == 5

        clock.now += 3600
        limiter.hit("client:/api/votes")
        assert len(limiter) == 1
