"""
Catalog cache
Explicit, injectable TTL cache for vehicle listing snapshots
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional
import logging
import time

from nacs_rental.schemas.vehicle import VehicleListing

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    vehicles: List[VehicleListing]
    stored_at: float
    last_updated: Optional[datetime]


class CatalogCache:
    """
    Holds catalog snapshots keyed by name with a time-to-live.

    `since(key)` exposes the newest listing timestamp of the cached snapshot so
    that a provider can fetch only listings changed after it.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.stored_at < self.ttl_seconds

    def get(self, key: str) -> Optional[List[VehicleListing]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not self._is_fresh(entry):
            logger.debug(f"Catalog cache EXPIRED: {key}")
            return None
        logger.debug(f"Catalog cache HIT: {key}")
        return list(entry.vehicles)

    def set(self, key: str, vehicles: List[VehicleListing]) -> None:
        timestamps = [v.updated_at for v in vehicles if v.updated_at is not None]
        self._entries[key] = CacheEntry(
            vehicles=list(vehicles),
            stored_at=self._clock(),
            last_updated=max(timestamps) if timestamps else None,
        )
        logger.debug(f"Catalog cache WRITE: {key} ({len(vehicles)} vehicles)")

    def since(self, key: str) -> Optional[datetime]:
        """Newest listing timestamp in the cached snapshot, even if the entry has expired"""
        entry = self._entries.get(key)
        return entry.last_updated if entry else None

    def peek(self, key: str) -> Optional[List[VehicleListing]]:
        """Cached snapshot regardless of freshness"""
        entry = self._entries.get(key)
        return list(entry.vehicles) if entry else None

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)
