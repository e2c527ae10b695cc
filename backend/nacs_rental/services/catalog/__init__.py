"""Vehicle catalog services"""
from nacs_rental.services.catalog.cache import CatalogCache
from nacs_rental.services.catalog.provider import (
    FirestoreCatalogProvider,
    apply_changes,
    normalize_catalog,
)

__all__ = [
    'CatalogCache',
    'FirestoreCatalogProvider',
    'apply_changes',
    'normalize_catalog',
]
