"""
Catalog provider
Reads car listings from Firestore, normalizes and de-duplicates them, and keeps
an injected CatalogCache up to date with incremental refreshes
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import logging

from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter

from nacs_rental.core.firebase import Collections
from nacs_rental.schemas.vehicle import VehicleListing
from nacs_rental.services.catalog.cache import CatalogCache

logger = logging.getLogger(__name__)

ALL_CARS_KEY = "all_cars"
PROMO_MARKER = "🔥"


def _to_datetime(value: Any) -> Optional[datetime]:
    """Firestore timestamps come back as datetime subclasses; anything else is dropped"""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if hasattr(value, 'timestamp'):
        return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
    return None


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def listing_doc_to_vehicle(doc_id: str, data: Dict[str, Any]) -> VehicleListing:
    """Convert a car-listings document to a VehicleListing"""
    return VehicleListing(
        id=doc_id,
        name=(data.get('name') or 'Unknown Vehicle').replace(PROMO_MARKER, '').strip(),
        price_per_day_raw=str(data.get('price') or ''),
        is_promotional=bool(data.get('isPromo', False)),
        category=data.get('category') or 'Sedan',
        passenger_capacity=_to_int(data.get('passengers')),
        bag_capacity=_to_int(data.get('bags')),
        transmission=data.get('transmission'),
        features=data.get('features') or [],
        image_url=data.get('image'),
        priority_level=data.get('priorityLevel', 0),
        updated_at=_to_datetime(data.get('updatedDate')),
    )


def normalize_name(name: str) -> str:
    return name.replace(PROMO_MARKER, '').strip().lower()


def unique_by_id(vehicles: Iterable[VehicleListing]) -> List[VehicleListing]:
    seen = set()
    out = []
    for vehicle in vehicles:
        if vehicle.id not in seen:
            seen.add(vehicle.id)
            out.append(vehicle)
    return out


def _newer(candidate: VehicleListing, existing: VehicleListing) -> bool:
    if candidate.updated_at is None:
        return False
    return existing.updated_at is None or candidate.updated_at > existing.updated_at


def unique_by_vehicle_name(vehicles: Iterable[VehicleListing]) -> List[VehicleListing]:
    """Keep one listing per vehicle name: promotional first, otherwise the latest updated"""
    chosen: Dict[str, VehicleListing] = {}
    for vehicle in vehicles:
        key = normalize_name(vehicle.name)
        existing = chosen.get(key)
        if existing is None:
            chosen[key] = vehicle
        elif vehicle.is_promotional and not existing.is_promotional:
            chosen[key] = vehicle
        elif vehicle.is_promotional == existing.is_promotional and _newer(vehicle, existing):
            chosen[key] = vehicle
    return list(chosen.values())


def normalize_catalog(vehicles: Iterable[VehicleListing]) -> List[VehicleListing]:
    """De-duplicate and order by priority level, highest first"""
    merged = unique_by_vehicle_name(unique_by_id(vehicles))
    return sorted(merged, key=lambda v: v.priority_level, reverse=True)


def apply_changes(snapshot: List[VehicleListing], changed: List[VehicleListing]) -> List[VehicleListing]:
    """Merge changed listings into a snapshot by document id"""
    by_id = {v.id: v for v in snapshot}
    for vehicle in changed:
        by_id[vehicle.id] = vehicle
    return normalize_catalog(by_id.values())


class FirestoreCatalogProvider:
    """
    Vehicle listings backed by the car-listings collection.

    Each snapshot is authoritative; prices are never cached in computed form.
    """

    def __init__(self, client, cache: CatalogCache):
        self.client = client
        self.cache = cache

    def _convert(self, docs) -> List[VehicleListing]:
        vehicles = []
        for doc in docs:
            try:
                vehicles.append(listing_doc_to_vehicle(doc.id, doc.to_dict() or {}))
            except Exception as e:
                logger.warning(f"Skipping malformed car listing {doc.id}: {e}")
        return vehicles

    def _fetch_all(self) -> List[VehicleListing]:
        query = self.client.collection(Collections.CAR_LISTINGS).order_by(
            'createdDate', direction=firestore.Query.DESCENDING
        )
        return self._convert(query.stream())

    def list_vehicles(self, force_refresh: bool = False) -> List[VehicleListing]:
        """All listings, from cache when fresh"""
        if not force_refresh:
            cached = self.cache.get(ALL_CARS_KEY)
            if cached is not None:
                return cached

        vehicles = normalize_catalog(self._fetch_all())
        self.cache.set(ALL_CARS_KEY, vehicles)
        logger.info(f"Loaded {len(vehicles)} vehicles from Firestore")
        return vehicles

    def refresh_since(self) -> List[VehicleListing]:
        """Fetch only listings updated after the cached snapshot and merge them in"""
        snapshot = self.cache.peek(ALL_CARS_KEY)
        since = self.cache.since(ALL_CARS_KEY)
        if snapshot is None or since is None:
            return self.list_vehicles(force_refresh=True)

        query = self.client.collection(Collections.CAR_LISTINGS).where(
            filter=FieldFilter('updatedDate', '>', since)
        )
        changed = self._convert(query.stream())
        merged = apply_changes(snapshot, changed)
        self.cache.set(ALL_CARS_KEY, merged)
        logger.info(f"Catalog refresh: {len(changed)} changed listing(s) since {since.isoformat()}")
        return merged

    def get_vehicle(self, vehicle_id: str) -> Optional[VehicleListing]:
        for vehicle in self.list_vehicles():
            if vehicle.id == vehicle_id:
                return vehicle

        doc = self.client.collection(Collections.CAR_LISTINGS).document(vehicle_id).get()
        if not doc.exists:
            return None
        return listing_doc_to_vehicle(doc.id, doc.to_dict() or {})
