"""Booking repository - Database reads for timeslots and bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, Timeslot


class BookingRepository:
    """Repository for timeslot and booking queries. Capacity changes go through BookingCapacityGuard."""

    @staticmethod
    def get_available_timeslots(
        db: Session,
        start: datetime,
        end: datetime,
        advisor_id: Optional[str] = None,
    ) -> list[Timeslot]:
        """Open slots in [start, end) that still have a free seat"""
        query = db.query(Timeslot).filter(
            Timeslot.is_available.is_(True),
            Timeslot.starts_at >= start,
            Timeslot.starts_at < end,
            Timeslot.current_bookings < Timeslot.max_bookings,
        )
        if advisor_id:
            query = query.filter(Timeslot.advisor_id == advisor_id)
        return query.order_by(Timeslot.starts_at.asc()).all()

    @staticmethod
    def create_timeslot(db: Session, **slot_data) -> Timeslot:
        slot = Timeslot(**slot_data)
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_user_bookings(db: Session, user_id: str) -> list[Booking]:
        query = db.query(Booking).filter(Booking.user_id == user_id)
        return query.order_by(Booking.booked_at.desc()).all()
