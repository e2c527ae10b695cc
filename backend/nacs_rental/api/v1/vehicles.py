"""
Vehicle catalog endpoints for NACS Car Rental
Read-only listing of the fleet from the car-listings collection
"""
from fastapi import APIRouter, HTTPException, status, Depends, Query
from typing import Optional
import logging

from nacs_rental.api.deps import get_catalog_provider
from nacs_rental.schemas.vehicle import VehicleListing, VehicleListResponse
from nacs_rental.services.catalog.provider import FirestoreCatalogProvider

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== Endpoints ====================

@router.get("", response_model=VehicleListResponse)
async def list_vehicles(
    category: Optional[str] = Query(None, description="Filter by category (Sedan, SUV, Van, ...)"),
    force_refresh: bool = Query(False, description="Bypass the catalog cache"),
    provider: FirestoreCatalogProvider = Depends(get_catalog_provider),
):
    """
    List the fleet, highest priority first

    Duplicate listings of the same vehicle are collapsed, preferring the
    promotional listing.
    """
    try:
        vehicles = provider.list_vehicles(force_refresh=force_refresh)

        if category:
            wanted = category.strip().lower()
            vehicles = [v for v in vehicles if v.category.lower() == wanted]

        return VehicleListResponse(vehicles=vehicles, total=len(vehicles))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing vehicles: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list vehicles"
        )


@router.get("/{vehicle_id}", response_model=VehicleListing)
async def get_vehicle(
    vehicle_id: str,
    provider: FirestoreCatalogProvider = Depends(get_catalog_provider),
):
    """Get a single listing by ID"""
    try:
        vehicle = provider.get_vehicle(vehicle_id)

        if not vehicle:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Vehicle {vehicle_id} not found"
            )

        return vehicle

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching vehicle {vehicle_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch vehicle"
        )
