"""
Booking capacity guard.

A slot's active bookings (status not cancelled/completed) must never exceed
``max_bookings``. Reservations go through a conditional increment of the
slot's ``current_bookings`` counter:

    UPDATE timeslots SET current_bookings = current_bookings + 1
    WHERE id = :id AND is_available AND current_bookings < max_bookings

The database evaluates the condition and the increment as one atomic step,
so concurrent attempts on the same slot cannot both observe spare capacity.
The booking row is inserted in the same transaction, and releasing capacity
decrements the counter in the same transaction as the status change.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ...clock import utcnow
from ...errors import BookingNotFound, CapacityExhausted, InvalidBookingTransition, SlotNotFound
from ...models import TERMINAL_BOOKING_STATUSES, Booking, BookingStatus, Timeslot
from .repository import BookingRepository

logger = logging.getLogger(__name__)


def generate_booking_reference() -> str:
    return f"BK{utcnow().strftime('%Y%m%d')}-{uuid.uuid4().hex[:8].upper()}"


class BookingCapacityGuard:
    """Enforces slot capacity across concurrent booking attempts"""

    def __init__(self, db: Session):
        self.db = db

    def try_reserve(self, slot_id: str, user_id: str, notes: Optional[str] = None) -> Optional[Booking]:
        """
        Reserve one seat on the slot and create a pending booking.

        Returns the booking when granted, None when the slot is full or closed
        (no side effects). Raises SlotNotFound for unknown slots.
        """
        try:
            result = self.db.execute(
                update(Timeslot)
                .where(
                    Timeslot.id == slot_id,
                    Timeslot.is_available.is_(True),
                    Timeslot.current_bookings < Timeslot.max_bookings,
                )
                .values(current_bookings=Timeslot.current_bookings + 1)
                .execution_options(synchronize_session=False)
            )

            if result.rowcount != 1:
                self.db.rollback()
                if self.db.get(Timeslot, slot_id) is None:
                    raise SlotNotFound()
                logger.info(f"📅 Timeslot {slot_id} has no remaining capacity")
                return None

            booking = Booking(
                user_id=user_id,
                timeslot_id=slot_id,
                booking_reference=generate_booking_reference(),
                status=BookingStatus.PENDING.value,
                notes=notes,
                booked_at=utcnow(),
            )
            self.db.add(booking)
            self.db.commit()
        except SlotNotFound:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to reserve timeslot {slot_id}: {e}")
            raise

        self.db.refresh(booking)
        logger.info(f"✅ Booking {booking.booking_reference} reserved on timeslot {slot_id}")
        return booking

    def reserve(self, slot_id: str, user_id: str, notes: Optional[str] = None) -> Booking:
        """try_reserve, surfacing a full slot as CapacityExhausted"""
        booking = self.try_reserve(slot_id, user_id, notes)
        if booking is None:
            raise CapacityExhausted(slot_id)
        return booking

    def release(self, booking_id: str, status: BookingStatus = BookingStatus.CANCELLED) -> Booking:
        """Move a booking into a terminal state and free its seat"""
        status = BookingStatus(status)
        if status.value not in TERMINAL_BOOKING_STATUSES:
            raise InvalidBookingTransition(f"{status.value} does not release capacity")

        try:
            now = utcnow()
            values = {"status": status.value, "updated_at": now}
            if status == BookingStatus.CANCELLED:
                values["cancelled_at"] = now
            else:
                values["completed_at"] = now

            # Conditional on the booking still being active, so a booking
            # cannot be released twice by concurrent requests
            result = self.db.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status.notin_(TERMINAL_BOOKING_STATUSES))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                if self.db.get(Booking, booking_id) is None:
                    raise BookingNotFound()
                raise InvalidBookingTransition("Booking is already cancelled or completed")

            timeslot_id = self.db.execute(
                select(Booking.timeslot_id).where(Booking.id == booking_id)
            ).scalar_one()
            self.db.execute(
                update(Timeslot)
                .where(Timeslot.id == timeslot_id, Timeslot.current_bookings > 0)
                .values(current_bookings=Timeslot.current_bookings - 1)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except (BookingNotFound, InvalidBookingTransition):
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to release booking {booking_id}: {e}")
            raise

        booking = self.db.get(Booking, booking_id, populate_existing=True)
        logger.info(f"📅 Booking {booking.booking_reference} {status.value}, capacity released")
        return booking

    def active_booking_count(self, slot_id: str) -> int:
        return self.db.execute(
            select(func.count(Booking.id)).where(
                Booking.timeslot_id == slot_id,
                Booking.status.notin_(TERMINAL_BOOKING_STATUSES),
            )
        ).scalar_one()

    def reconcile(self, slot_id: str) -> Timeslot:
        """Recompute the denormalized counter from the active bookings"""
        try:
            slot = self.db.get(Timeslot, slot_id, with_for_update=True)
            if slot is None:
                raise SlotNotFound()
            active = self.active_booking_count(slot_id)
            if slot.current_bookings != active:
                logger.warning(
                    f"⚠️ Timeslot {slot_id} counter drift: stored={slot.current_bookings}, actual={active}"
                )
                slot.current_bookings = active
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(slot)
        return slot

    def available_timeslots(
        self, start: datetime, end: datetime, advisor_id: Optional[str] = None
    ) -> list[Timeslot]:
        """Open slots starting in [start, end) with at least one free seat"""
        return BookingRepository.get_available_timeslots(self.db, start, end, advisor_id)
