"""Read-through cache of resolved containers.

Entries are dropped only when storage reports a committed write, so a cached
result is always the resolution of what storage currently holds.
"""

import copy
import logging
from collections.abc import Callable
from typing import Any

from src.resolve import ResolvedInstance
from src.storage import StorageEvent, StorageEventKind

logger = logging.getLogger(__name__)

CacheKey = tuple[str, tuple[Any, ...]]


class ResolutionCache:
    """Resolved instance lists keyed by container id and resolve options.

    Args:
        enabled: When False every lookup misses and nothing is stored.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._entries: dict[CacheKey, list[ResolvedInstance]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_resolve(
        self,
        container_id: str,
        options: tuple[Any, ...],
        resolve: Callable[[], list[ResolvedInstance]],
    ) -> list[ResolvedInstance]:
        """Return the cached result, calling ``resolve`` on a miss."""
        key = (container_id, options)
        if self.enabled and key in self._entries:
            self.hits += 1
            return copy.deepcopy(self._entries[key])
        self.misses += 1
        result = resolve()
        if self.enabled:
            self._entries[key] = copy.deepcopy(result)
        return result

    def invalidate(self, container_id: str) -> None:
        """Drop every entry of one container."""
        for key in [k for k in self._entries if k[0] == container_id]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def on_storage_event(self, event: StorageEvent) -> None:
        """Storage listener: container writes drop that container, definition
        writes drop everything since any container may reference them."""
        if event.kind in (
            StorageEventKind.CONTAINER_SAVED,
            StorageEventKind.CONTAINER_DELETED,
        ):
            self.invalidate(event.key)
        else:
            logger.debug(f"Definition '{event.key}' changed, clearing resolution cache")
            self.clear()

    def stats(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
        }
