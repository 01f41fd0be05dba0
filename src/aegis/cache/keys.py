"""Cache key schema for Aegis.

Key format: {namespace}_{scope}

Where:
- namespace: the concern that produced the value ("geocode", "social_media",
  "official_updates", "verify_image")
- scope: the natural identifier of the cached value (incident id, free-text
  description, image URL)

Backends may add their own storage prefix; callers always see these keys.
"""

from __future__ import annotations

from typing import Literal

Namespace = Literal["geocode", "social_media", "official_updates", "verify_image"]


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    GEOCODE = "geocode"
    SOCIAL_MEDIA = "social_media"
    OFFICIAL_UPDATES = "official_updates"
    VERIFY_IMAGE = "verify_image"

    NAMESPACES: tuple[str, ...] = (GEOCODE, SOCIAL_MEDIA, OFFICIAL_UPDATES, VERIFY_IMAGE)

    @classmethod
    def geocode(cls, description: str) -> str:
        """Key for a geocoded free-text description."""
        return f"{cls.GEOCODE}_{description}"

    @classmethod
    def social_media(cls, incident_id: str) -> str:
        """Key for the mentions list of an incident."""
        return f"{cls.SOCIAL_MEDIA}_{incident_id}"

    @classmethod
    def official_updates(cls, topic: str) -> str:
        """Key for the aggregated official updates of a topic."""
        return f"{cls.OFFICIAL_UPDATES}_{topic}"

    @classmethod
    def verify_image(cls, incident_id: str, image_url: str) -> str:
        """Key for an image verification verdict."""
        return f"{cls.VERIFY_IMAGE}_{incident_id}_{image_url}"

    @classmethod
    def parse_key(cls, key: str) -> dict[str, str] | None:
        """Split a key into namespace and scope.

        Returns None if the key doesn't belong to a known namespace.
        """
        # Longest first so "official_updates" is not read as "official"
        for namespace in sorted(cls.NAMESPACES, key=len, reverse=True):
            prefix = f"{namespace}_"
            if key.startswith(prefix) and len(key) > len(prefix):
                return {"namespace": namespace, "scope": key[len(prefix) :]}
        return None

    @classmethod
    def namespace_of(cls, key: str) -> str:
        """Namespace label for metrics; "other" for unknown keys."""
        parsed = cls.parse_key(key)
        return parsed["namespace"] if parsed else "other"
