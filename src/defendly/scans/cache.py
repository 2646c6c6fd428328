# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Organization-scoped scan list cache with lazy TTL eviction."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

DEFAULT_TTL_SECONDS = 5 * 60.0

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    key: str
    data: tuple[T, ...]
    timestamp: float


class OrgScanCache(Generic[T]):
    """
    Maps an organization key to its most recently fetched scan list.

    Entries older than `ttl` read as absent and are dropped by that read; nothing
    sweeps the cache in the background.
    """

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS, *, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    def get(self, key: str) -> list[T] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp >= self.ttl:
            del self._entries[key]
            return None
        return list(entry.data)

    def set(self, key: str, data: Sequence[T]) -> None:
        self._entries[key] = CacheEntry(key=key, data=tuple(data), timestamp=self._clock())

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def org_cache_key(org_id: str) -> str:
    return f"org-{org_id}"


__all__ = ["CacheEntry", "DEFAULT_TTL_SECONDS", "OrgScanCache", "org_cache_key"]
