from datetime import datetime, timezone

import pytest

from nacs_rental.core.firebase import Collections
from nacs_rental.schemas.vehicle import VehicleListing
from nacs_rental.services.catalog.cache import CatalogCache
from nacs_rental.services.catalog.provider import (
    ALL_CARS_KEY,
    FirestoreCatalogProvider,
    listing_doc_to_vehicle,
    normalize_catalog,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def listing(id, name, promo=False, priority=0, updated=None):
    return VehicleListing(
        id=id,
        name=name,
        price_per_day_raw="₱ 2,000",
        is_promotional=promo,
        priority_level=priority,
        updated_at=updated,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider(mock_db, clock):
    return FirestoreCatalogProvider(mock_db, CatalogCache(ttl_seconds=300, clock=clock))


class TestNormalizeCatalog:

    def test_orders_by_priority_descending(self):
        vehicles = normalize_catalog([
            listing("a", "Van", priority=2),
            listing("b", "Sedan", priority=5),
            listing("c", "Hatchback", priority=3),
        ])
        assert [v.id for v in vehicles] == ["b", "c", "a"]

    def test_duplicate_ids_keep_first(self):
        vehicles = normalize_catalog([listing("a", "Van"), listing("a", "Van copy")])
        assert [v.name for v in vehicles] == ["Van"]

    def test_same_name_prefers_promotional_listing(self):
        vehicles = normalize_catalog([
            listing("a", "Group E - Sedan"),
            listing("b", "🔥 group e - sedan ", promo=True),
        ])
        assert [v.id for v in vehicles] == ["b"]

    def test_same_name_otherwise_keeps_latest_update(self):
        vehicles = normalize_catalog([
            listing("a", "Van", updated=datetime(2024, 1, 1, tzinfo=timezone.utc)),
            listing("b", "Van", updated=datetime(2024, 3, 1, tzinfo=timezone.utc)),
        ])
        assert [v.id for v in vehicles] == ["b"]


class TestListingConversion:

    def test_document_fields(self):
        vehicle = listing_doc_to_vehicle("x", {
            'name': '🔥 Group E - Sedan',
            'price': '₱ 2,800',
            'isPromo': True,
            'passengers': '5',
            'bags': 'n/a',
            'priorityLevel': '4',
        })
        assert vehicle.name == "Group E - Sedan"
        assert vehicle.price_per_day_raw == "₱ 2,800"
        assert vehicle.is_promotional is True
        assert vehicle.passenger_capacity == 5
        assert vehicle.bag_capacity is None
        assert vehicle.priority_level == 4
        assert vehicle.features == []


class TestCatalogCache:

    def test_entries_expire_after_ttl(self, clock):
        cache = CatalogCache(ttl_seconds=60, clock=clock)
        cache.set("k", [listing("a", "Van")])
        assert len(cache.get("k")) == 1

        clock.now += 61
        assert cache.get("k") is None
        assert len(cache.peek("k")) == 1

    def test_since_tracks_newest_listing(self, clock):
        cache = CatalogCache(ttl_seconds=60, clock=clock)
        newest = datetime(2024, 3, 1, tzinfo=timezone.utc)
        cache.set("k", [
            listing("a", "Van", updated=datetime(2024, 1, 1, tzinfo=timezone.utc)),
            listing("b", "Sedan", updated=newest),
            listing("c", "Hatchback"),
        ])
        assert cache.since("k") == newest
        assert cache.since("missing") is None

    def test_invalidate(self, clock):
        cache = CatalogCache(ttl_seconds=60, clock=clock)
        cache.set("a", [])
        cache.set("b", [])
        cache.invalidate("a")
        assert cache.get("a") is None
        assert cache.get("b") == []
        cache.invalidate()
        assert cache.get("b") is None


class TestFirestoreCatalogProvider:

    def test_lists_seeded_fleet_by_priority(self, provider):
        vehicles = provider.list_vehicles()
        assert [v.id for v in vehicles] == [
            "group-e-sedan", "group-f-auv", "group-d-hatchback", "group-a-van",
        ]

    def test_serves_from_cache_until_forced(self, provider, mock_db):
        provider.list_vehicles()
        mock_db.collection(Collections.CAR_LISTINGS).document("group-a-van").delete()

        assert len(provider.list_vehicles()) == 4
        assert len(provider.list_vehicles(force_refresh=True)) == 3

    def test_refetches_after_ttl(self, provider, mock_db, clock):
        provider.list_vehicles()
        mock_db.collection(Collections.CAR_LISTINGS).document("group-a-van").delete()

        clock.now += 301
        assert len(provider.list_vehicles()) == 3

    def test_refresh_since_merges_changed_listings(self, provider, mock_db):
        provider.list_vehicles()
        mock_db.collection(Collections.CAR_LISTINGS).document("group-a-van").update({
            'price': '₱ 4,800',
            'priorityLevel': 9,
            'updatedDate': datetime(2024, 6, 1, tzinfo=timezone.utc),
        })

        vehicles = provider.refresh_since()
        assert vehicles[0].id == "group-a-van"
        assert vehicles[0].price_per_day_raw == "₱ 4,800"
        assert len(vehicles) == 4
        assert provider.cache.since(ALL_CARS_KEY) == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_refresh_since_without_snapshot_loads_everything(self, provider):
        assert len(provider.refresh_since()) == 4

    def test_get_vehicle(self, provider):
        assert provider.get_vehicle("group-d-hatchback").name == "Group D - Hatchback (5 seater) M/T"
        assert provider.get_vehicle("missing") is None
