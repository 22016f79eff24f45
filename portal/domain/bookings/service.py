"""Booking service - Business logic for timeslots and bookings"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import BookingNotFound
from ...models import Booking, BookingStatus, Timeslot
from ...permissions import PermissionResolver
from ...principal import Principal
from .capacity import BookingCapacityGuard
from .repository import BookingRepository
from .schemas import BookingCreate, TimeslotCreate

logger = logging.getLogger(__name__)


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session, resolver: PermissionResolver):
        self.db = db
        self.resolver = resolver
        self.repo = BookingRepository()
        self.guard = BookingCapacityGuard(db)

    def available_timeslots(
        self, start: datetime, end: datetime, advisor_id: Optional[str] = None
    ) -> list[Timeslot]:
        return self.guard.available_timeslots(start, end, advisor_id)

    def create_timeslot(self, data: TimeslotCreate, principal: Principal) -> Timeslot:
        advisor_id = data.advisor_id or principal.user_id
        if advisor_id != principal.user_id:
            # Opening slots in someone else's calendar
            self.resolver.require(principal, "timeslots.all", "create")

        slot = self.repo.create_timeslot(
            self.db,
            advisor_id=advisor_id,
            starts_at=data.starts_at,
            duration_minutes=data.duration_minutes,
            max_bookings=data.max_bookings,
        )
        logger.info(f"📅 Timeslot {slot.id} opened at {slot.starts_at} (capacity {slot.max_bookings})")
        return slot

    def create_booking(self, data: BookingCreate, principal: Principal) -> Booking:
        logger.info(f"📥 Booking timeslot {data.timeslot_id} for user {principal.user_id}")
        return self.guard.reserve(data.timeslot_id, principal.user_id, data.notes)

    def list_bookings(self, principal: Principal) -> list[Booking]:
        return self.repo.get_user_bookings(self.db, principal.user_id)

    def get_booking(self, booking_id: str, principal: Principal) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if booking is None:
            raise BookingNotFound()
        if booking.user_id == principal.user_id:
            self.resolver.require(principal, "bookings.own", "read")
        else:
            self.resolver.require(principal, "bookings.all", "read")
        return booking

    def cancel_booking(self, booking_id: str, principal: Principal) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if booking is None:
            raise BookingNotFound()
        if booking.user_id == principal.user_id:
            self.resolver.require(principal, "bookings.own", "update")
        else:
            self.resolver.require(principal, "bookings.all", "update")
        return self.guard.release(booking_id, BookingStatus.CANCELLED)

    def complete_booking(self, booking_id: str) -> Booking:
        return self.guard.release(booking_id, BookingStatus.COMPLETED)
