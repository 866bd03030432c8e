"""Tests for LedgerViewCache (fiscal_services/read_cache.py)."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from fiscal_kernel.domain.clock import DeterministicClock
from fiscal_services.read_cache import LedgerViewCache


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2024, 1, 1, tzinfo=timezone.utc))


class TestLedgerViewCache:

    def test_miss_then_hit(self, clock):
        cache = LedgerViewCache(clock=clock, ttl_seconds=60)
        org = uuid4()

        assert cache.get(org, "ledger", (None,)) is None
        cache.put(org, "ledger", (None,), ("row",))

        assert cache.get(org, "ledger", (None,)) == ("row",)
        assert (cache.hits, cache.misses) == (1, 1)

    def test_params_are_part_of_key(self, clock):
        cache = LedgerViewCache(clock=clock)
        org = uuid4()
        cache.put(org, "trial_balance", (True,), "posted")

        assert cache.get(org, "trial_balance", (False,)) is None
        assert cache.get(org, "ledger", (True,)) is None

    def test_expires_at_ttl(self, clock):
        cache = LedgerViewCache(clock=clock, ttl_seconds=60)
        org = uuid4()
        cache.put(org, "ledger", (), "v")

        clock.advance(59)
        assert cache.get(org, "ledger", ()) == "v"
        clock.advance(1)
        assert cache.get(org, "ledger", ()) is None
        assert len(cache) == 0

    def test_invalidate_returns_dropped_count(self, clock):
        cache = LedgerViewCache(clock=clock)
        org = uuid4()
        cache.put(org, "ledger", (), "a")
        cache.put(org, "journal_listing", (), "b")

        assert cache.invalidate_organization(org) == 2
        assert cache.invalidate_organization(org) == 0

    def test_clear(self, clock):
        cache = LedgerViewCache(clock=clock)
        cache.put(uuid4(), "ledger", (), "a")
        cache.put(uuid4(), "ledger", (), "b")
        cache.clear()
        assert len(cache) == 0

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_non_positive_ttl_rejected(self, ttl):
        with pytest.raises(ValueError):
            LedgerViewCache(ttl_seconds=ttl)
