"""Version marker storage protocol."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class VersionMarkerStore(Protocol):
    """Shared storage for the cache format version marker.

    Every cache instance reads the same marker, so the first instance
    started under a new version clears the caches of all the others.
    """

    async def get(self) -> str | None:
        """Return the stored version, or None if no marker exists."""
        ...

    async def set(self, version: str) -> None:
        """Store a new version marker."""
        ...
