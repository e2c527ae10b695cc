"""
Shared FastAPI dependencies
Collaborators are built from app.state so tests can swap them per app
"""
from fastapi import Depends, HTTPException, Request, status
from typing import Any, Dict

from nacs_rental.core.firebase import get_db
from nacs_rental.core.security import get_current_user, require_admin
from nacs_rental.services.booking.store import BookingStore, FirestoreBookingStore
from nacs_rental.services.booking.viewer import AdminViewer, CustomerViewer, Viewer, viewer_for
from nacs_rental.services.catalog.provider import FirestoreCatalogProvider
from nacs_rental.services.pricing.rule_engine import BookingPricingEngine


def get_pricing_engine(request: Request) -> BookingPricingEngine:
    return request.app.state.pricing_engine


def get_catalog_provider(request: Request) -> FirestoreCatalogProvider:
    return FirestoreCatalogProvider(get_db(), request.app.state.catalog_cache)


def get_booking_store(request: Request) -> BookingStore:
    store = getattr(request.app.state, 'booking_store', None)
    return store if store is not None else FirestoreBookingStore(get_db())


def get_viewer(
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: BookingStore = Depends(get_booking_store),
    engine: BookingPricingEngine = Depends(get_pricing_engine),
) -> Viewer:
    return viewer_for(current_user, store, engine)


def get_admin_viewer(
    current_user: Dict[str, Any] = Depends(require_admin),
    store: BookingStore = Depends(get_booking_store),
    engine: BookingPricingEngine = Depends(get_pricing_engine),
) -> AdminViewer:
    return AdminViewer(current_user, store, engine)


def get_customer_viewer(viewer: Viewer = Depends(get_viewer)) -> CustomerViewer:
    if not isinstance(viewer, CustomerViewer):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only customer accounts can book or extend rentals"
        )
    return viewer
