"""Mutation-triggered cache invalidation.

Maps a domain mutation to the cache keys it makes stale and erases them
through the cache store's best-effort delete. The mapping is static: one
mutation kind derives exactly one key from the mutation's scope.

Example:
    coordinator = InvalidationCoordinator(cache)

    # A report was created under incident X
    await coordinator.invalidate(Mutation.report(report_id, incident_id="X"))
    # -> social_media_X deleted

Handlers run invalidation before publishing the change event and before
responding, so the next reader never sees the pre-mutation value.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from aegis.cache.keys import CacheKeys
from aegis.cache.store import CacheStore

logger = logging.getLogger(__name__)


class MutationKind(str, Enum):
    """Kind of domain entity that was written."""

    REPORT = "report"
    INCIDENT = "incident"


@dataclass(frozen=True, slots=True)
class Mutation:
    """A completed write: what changed and under which incident."""

    kind: MutationKind
    entity_id: str
    related_id: str

    @classmethod
    def report(cls, report_id: str, incident_id: str) -> "Mutation":
        """A report (mention) was created, updated, verified, or deleted."""
        return cls(kind=MutationKind.REPORT, entity_id=report_id, related_id=incident_id)

    @classmethod
    def incident(cls, incident_id: str) -> "Mutation":
        """An incident record was updated or deleted."""
        return cls(kind=MutationKind.INCIDENT, entity_id=incident_id, related_id=incident_id)


KeyRule = Callable[[Mutation], str]

# One mutation kind -> one derived key
INVALIDATION_RULES: dict[MutationKind, KeyRule] = {
    MutationKind.REPORT: lambda m: CacheKeys.social_media(m.related_id),
    MutationKind.INCIDENT: lambda m: CacheKeys.official_updates(m.related_id),
}


class InvalidationCoordinator:
    """Erases the cache keys a mutation makes stale."""

    def __init__(self, cache: CacheStore, rules: dict[MutationKind, KeyRule] | None = None):
        self.cache = cache
        self.rules = rules if rules is not None else INVALIDATION_RULES

    def keys_for(self, mutation: Mutation) -> list[str]:
        """Cache keys affected by a mutation."""
        rule = self.rules.get(mutation.kind)
        if rule is None:
            return []
        return [rule(mutation)]

    async def invalidate(self, mutation: Mutation) -> list[str]:
        """Delete every key affected by the mutation.

        Deletion is best-effort (the store absorbs failures). Returns the
        keys that were targeted.
        """
        keys = self.keys_for(mutation)
        for key in keys:
            await self.cache.delete(key)
        if keys:
            logger.debug(
                f"Invalidated {keys} after {mutation.kind.value} {mutation.entity_id} "
                f"(incident {mutation.related_id})"
            )
        return keys
