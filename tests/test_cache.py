"""Unit tests for the transition result cache (phaseflow.cache).

Tests cover:
- cache_key format
- Hits before expiry and misses just after, at ttl +/- 0.001s
- Lazy eviction on lookup and bulk sweep past max_entries
- clear / len / contains
"""

from __future__ import annotations

import pytest

from phaseflow.cache import TransformationCache, cache_key
from phaseflow.models import TransitionResult


@pytest.fixture
def result(output_factory) -> TransitionResult:
    return TransitionResult(
        success=True,
        from_phase="concept",
        to_phase="requirements",
        transformation=output_factory(),
    )


class TestCacheKey:
    @pytest.mark.unit
    def test_format(self):
        assert cache_key("concept", "requirements", "web_app") == "concept_to_requirements_web_app"

    @pytest.mark.unit
    def test_missing_project_type(self):
        assert cache_key("design", "architecture", None) == "design_to_architecture_default"


class TestExpiry:
    @pytest.mark.unit
    def test_hit_just_before_ttl(self, fake_clock, result):
        cache = TransformationCache(ttl=60.0, clock=fake_clock)
        cache.set("k", result)

        fake_clock.advance(60.0 - 0.001)
        assert cache.get("k") is result

    @pytest.mark.unit
    def test_miss_just_after_ttl(self, fake_clock, result):
        cache = TransformationCache(ttl=60.0, clock=fake_clock)
        cache.set("k", result)

        fake_clock.advance(60.0 + 0.001)
        assert cache.get("k") is None

    @pytest.mark.unit
    def test_expired_entry_evicted_on_lookup(self, fake_clock, result):
        cache = TransformationCache(ttl=1.0, clock=fake_clock)
        cache.set("k", result)
        fake_clock.advance(2.0)

        cache.get("k")
        assert "k" not in cache
        assert len(cache) == 0

    @pytest.mark.unit
    def test_set_records_expiry(self, fake_clock, result):
        fake_clock.advance(100.0)
        entry = TransformationCache(ttl=30.0, clock=fake_clock).set("k", result)

        assert entry.created_at == 100.0
        assert entry.expires_at == 130.0

    @pytest.mark.unit
    def test_unknown_key(self, result):
        assert TransformationCache().get("nothing") is None


class TestSweep:
    @pytest.mark.unit
    def test_sweep_after_max_entries(self, fake_clock, result):
        cache = TransformationCache(ttl=10.0, max_entries=2, clock=fake_clock)
        cache.set("old-1", result)
        cache.set("old-2", result)
        fake_clock.advance(11.0)

        cache.set("fresh", result)

        assert len(cache) == 1
        assert "fresh" in cache

    @pytest.mark.unit
    def test_sweep_keeps_live_entries(self, fake_clock, result):
        cache = TransformationCache(ttl=10.0, clock=fake_clock)
        cache.set("a", result)
        fake_clock.advance(5.0)
        cache.set("b", result)
        fake_clock.advance(6.0)

        assert cache.sweep() == 1
        assert "b" in cache

    @pytest.mark.unit
    def test_clear(self, result):
        cache = TransformationCache()
        cache.set("a", result)
        cache.clear()
        assert len(cache) == 0
