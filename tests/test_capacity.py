"""Tests for the booking capacity guard, including concurrent reservations."""

import asyncio
import threading
from datetime import timedelta

import httpx
import pytest

from portal.clock import utcnow
from portal.domain.bookings.capacity import BookingCapacityGuard
from portal.errors import BookingNotFound, CapacityExhausted, InvalidBookingTransition, SlotNotFound
from portal.models import Booking, BookingStatus, Timeslot


def test_reserve_until_full(db, make_user, make_timeslot):
    user = make_user()
    slot = make_timeslot(max_bookings=2)
    guard = BookingCapacityGuard(db)

    first = guard.try_reserve(slot.id, user.id)
    second = guard.try_reserve(slot.id, user.id, notes="second seat")
    third = guard.try_reserve(slot.id, user.id)

    assert first.status == BookingStatus.PENDING.value
    assert second.notes == "second seat"
    assert first.booking_reference != second.booking_reference
    assert third is None
    assert guard.active_booking_count(slot.id) == 2
    db.refresh(slot)
    assert slot.current_bookings == 2
    assert slot.remaining_capacity == 0


def test_refused_reservation_has_no_side_effects(db, make_user, make_timeslot):
    user = make_user()
    slot = make_timeslot(max_bookings=1)
    guard = BookingCapacityGuard(db)
    guard.reserve(slot.id, user.id)

    with pytest.raises(CapacityExhausted) as exc_info:
        guard.reserve(slot.id, user.id)

    assert exc_info.value.slot_id == slot.id
    assert db.query(Booking).filter(Booking.timeslot_id == slot.id).count() == 1


def test_unknown_slot(db, make_user):
    with pytest.raises(SlotNotFound):
        BookingCapacityGuard(db).try_reserve("no-such-slot", make_user().id)


def test_closed_slot_is_not_bookable(db, make_user, make_timeslot):
    slot = make_timeslot(max_bookings=3)
    slot.is_available = False
    db.commit()

    assert BookingCapacityGuard(db).try_reserve(slot.id, make_user().id) is None


def test_concurrent_reservations_never_exceed_capacity(session_factory, make_user, make_timeslot):
    capacity = 3
    attempts = 12
    user = make_user()
    slot = make_timeslot(max_bookings=capacity)
    slot_id, user_id = slot.id, user.id

    barrier = threading.Barrier(attempts)
    results = []
    errors = []
    lock = threading.Lock()

    def attempt():
        session = session_factory()
        try:
            barrier.wait()
            booking = BookingCapacityGuard(session).try_reserve(slot_id, user_id)
            with lock:
                results.append(booking is not None)
        except Exception as e:
            with lock:
                errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=attempt) for _ in range(attempts)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert results.count(True) == capacity
    assert results.count(False) == attempts - capacity

    session = session_factory()
    try:
        guard = BookingCapacityGuard(session)
        assert guard.active_booking_count(slot_id) == capacity
        assert session.get(Timeslot, slot_id).current_bookings == capacity
    finally:
        session.close()


@pytest.mark.parametrize("app_fixture", ["app", "production_app"])
def test_concurrent_booking_requests_never_exceed_capacity(
    request, app_fixture, make_user, make_timeslot, auth_headers
):
    app = request.getfixturevalue(app_fixture)
    slot = make_timeslot(max_bookings=3)
    headers = [auth_headers(make_user()) for _ in range(8)]

    async def book_all():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://portal") as client:
            responses = await asyncio.gather(
                *(client.post("/bookings", headers=h, json={"timeslot_id": slot.id}) for h in headers)
            )
        return sorted(response.status_code for response in responses)

    assert asyncio.run(book_all()) == [201] * 3 + [409] * 5


def test_cancelling_frees_exactly_one_seat(db, make_user, make_timeslot):
    user = make_user()
    slot = make_timeslot(max_bookings=2)
    guard = BookingCapacityGuard(db)
    first = guard.reserve(slot.id, user.id)
    guard.reserve(slot.id, user.id)
    assert guard.try_reserve(slot.id, user.id) is None

    cancelled = guard.release(first.id)

    assert cancelled.status == BookingStatus.CANCELLED.value
    assert cancelled.cancelled_at is not None
    assert guard.try_reserve(slot.id, user.id) is not None
    assert guard.try_reserve(slot.id, user.id) is None


def test_completing_releases_capacity(db, make_user, make_timeslot):
    user = make_user()
    slot = make_timeslot(max_bookings=1)
    guard = BookingCapacityGuard(db)
    booking = guard.reserve(slot.id, user.id)

    completed = guard.release(booking.id, BookingStatus.COMPLETED)

    assert completed.completed_at is not None
    assert guard.active_booking_count(slot.id) == 0


def test_booking_cannot_be_released_twice(db, make_user, make_timeslot):
    user = make_user()
    slot = make_timeslot(max_bookings=2)
    guard = BookingCapacityGuard(db)
    booking = guard.reserve(slot.id, user.id)
    guard.reserve(slot.id, user.id)
    guard.release(booking.id)

    with pytest.raises(InvalidBookingTransition):
        guard.release(booking.id)

    db.refresh(slot)
    assert slot.current_bookings == 1


def test_release_rejects_non_terminal_status(db, make_user, make_timeslot):
    guard = BookingCapacityGuard(db)
    booking = guard.reserve(make_timeslot().id, make_user().id)

    with pytest.raises(InvalidBookingTransition):
        guard.release(booking.id, BookingStatus.CONFIRMED)


def test_release_unknown_booking(db):
    with pytest.raises(BookingNotFound):
        BookingCapacityGuard(db).release("missing")


def test_reconcile_repairs_counter_drift(db, make_user, make_timeslot):
    slot = make_timeslot(max_bookings=3)
    guard = BookingCapacityGuard(db)
    guard.reserve(slot.id, make_user().id)

    slot.current_bookings = 3
    db.commit()

    repaired = guard.reconcile(slot.id)

    assert repaired.current_bookings == 1


def test_available_timeslots_excludes_full_and_closed_slots(db, make_user, make_timeslot):
    user = make_user()
    open_slot = make_timeslot(max_bookings=2)
    full_slot = make_timeslot(max_bookings=1)
    closed_slot = make_timeslot(max_bookings=1)
    later_slot = make_timeslot(max_bookings=1, starts_in_days=60)
    closed_slot.is_available = False
    db.commit()

    guard = BookingCapacityGuard(db)
    guard.reserve(full_slot.id, user.id)
    guard.reserve(open_slot.id, user.id)

    now = utcnow()
    available = guard.available_timeslots(now, now + timedelta(days=30))

    assert [s.id for s in available] == [open_slot.id]
    assert later_slot.id not in [s.id for s in available]
