"""Booking router - FastAPI endpoints for timeslots and bookings"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_principal, get_permission_resolver, require_permission
from ...clock import utcnow
from ...database import get_db
from ...permissions import PermissionResolver
from ...principal import Principal
from .schemas import BookingCreate, BookingResponse, TimeslotCreate, TimeslotResponse
from .service import BookingService

logger = logging.getLogger(__name__)

timeslot_router = APIRouter(prefix="/timeslots", tags=["Timeslots"])
router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(
    db: Session = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, resolver)


# ============================================================================
# TIMESLOTS
# ============================================================================


@timeslot_router.get("/available", response_model=list[TimeslotResponse])
def get_available_timeslots(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    advisor_id: Optional[str] = Query(None),
    principal: Principal = Depends(require_permission("timeslots", "read")),
    service: BookingService = Depends(get_booking_service),
):
    """Timeslots with free capacity, by default for the next 30 days"""
    start = start or utcnow()
    end = end or start + timedelta(days=30)
    return service.available_timeslots(start, end, advisor_id)


@timeslot_router.post("", response_model=TimeslotResponse, status_code=status.HTTP_201_CREATED)
def create_timeslot(
    data: TimeslotCreate,
    principal: Principal = Depends(require_permission("timeslots.own", "create")),
    service: BookingService = Depends(get_booking_service),
):
    return service.create_timeslot(data, principal)


# ============================================================================
# BOOKINGS
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    principal: Principal = Depends(require_permission("bookings.own", "create")),
    service: BookingService = Depends(get_booking_service),
):
    """Book a seat on a timeslot. Responds 409 when the slot is full."""
    return service.create_booking(data, principal)


@router.get("", response_model=list[BookingResponse])
def get_my_bookings(
    principal: Principal = Depends(require_permission("bookings.own", "read")),
    service: BookingService = Depends(get_booking_service),
):
    return service.list_bookings(principal)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_booking(booking_id, principal)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    principal: Principal = Depends(require_permission("bookings.own", "update")),
    service: BookingService = Depends(get_booking_service),
):
    return service.cancel_booking(booking_id, principal)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
def complete_booking(
    booking_id: str,
    principal: Principal = Depends(require_permission("bookings.all", "update")),
    service: BookingService = Depends(get_booking_service),
):
    return service.complete_booking(booking_id)
