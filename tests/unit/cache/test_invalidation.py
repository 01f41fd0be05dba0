"""Tests for mutation-triggered cache invalidation."""

from __future__ import annotations

from unittest.mock import AsyncMock

from aegis.cache.invalidation import InvalidationCoordinator, Mutation, MutationKind
from aegis.cache.keys import CacheKeys
from aegis.cache.memory import InMemoryCacheStore


class TestKeyDerivation:
    """Each mutation kind maps to exactly one key."""

    def test_report_mutation_targets_incident_mentions(self) -> None:
        coordinator = InvalidationCoordinator(InMemoryCacheStore())
        keys = coordinator.keys_for(Mutation.report("r-1", "inc-9"))
        assert keys == ["social_media_inc-9"]

    def test_incident_mutation_targets_official_updates(self) -> None:
        coordinator = InvalidationCoordinator(InMemoryCacheStore())
        assert coordinator.keys_for(Mutation.incident("inc-9")) == ["official_updates_inc-9"]

    def test_kind_without_rule_targets_nothing(self) -> None:
        coordinator = InvalidationCoordinator(InMemoryCacheStore(), rules={})
        assert coordinator.keys_for(Mutation.report("r-1", "inc-9")) == []

    def test_factory_sets_kind(self) -> None:
        assert Mutation.report("r", "i").kind is MutationKind.REPORT
        assert Mutation.incident("i").related_id == "i"


class TestInvalidate:
    """Invalidation erases stale values before the next read."""

    async def test_read_after_mutation_misses(self, cache: InMemoryCacheStore) -> None:
        """A mentions list cached before a report write is never served after it."""
        key = CacheKeys.social_media("inc-1")
        await cache.set(key, [{"id": "old"}], 3600)

        await InvalidationCoordinator(cache).invalidate(Mutation.report("new", "inc-1"))

        assert await cache.get(key) is None

    async def test_other_incidents_untouched(self, cache: InMemoryCacheStore) -> None:
        await cache.set(CacheKeys.social_media("inc-2"), ["kept"], 3600)
        await InvalidationCoordinator(cache).invalidate(Mutation.report("r", "inc-1"))
        assert await cache.get(CacheKeys.social_media("inc-2")) == ["kept"]

    async def test_invalidating_absent_key_is_noop(self, cache: InMemoryCacheStore) -> None:
        keys = await InvalidationCoordinator(cache).invalidate(Mutation.incident("inc-1"))
        assert keys == ["official_updates_inc-1"]
        assert len(cache) == 0

    async def test_uses_store_delete(self) -> None:
        store = AsyncMock()
        await InvalidationCoordinator(store).invalidate(Mutation.report("r", "inc-3"))
        store.delete.assert_awaited_once_with("social_media_inc-3")
