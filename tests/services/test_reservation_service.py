"""
Tests del servicio de reservas: alta con control de aforo, duplicados,
reactivación y cancelación.
"""
from datetime import date

import pytest

from studio_booking.core.exceptions import (
    CapacityExceededError,
    DuplicateReservationError,
    NotFoundError,
    ValidationError,
)
from studio_booking.models.customer import Customer
from studio_booking.models.reservation import Reservation, ReservationStatus
from studio_booking.schemas.reservation import ReservationCreate, ReservationUpdate
from studio_booking.services.reservation import reservation_service


def _reservation_in(schedule_id, line_id="U-line-1", **overrides):
    data = {
        "scheduleId": schedule_id,
        "customerNameKanji": "山田 太郎",
        "customerNameKatakana": "ヤマダ タロウ",
        "lineId": line_id,
        "phone": "090-1234-5678",
    }
    data.update(overrides)
    return ReservationCreate(**data)


class TestCreateReservation:
    def test_creates_customer_and_confirms(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1), capacity=5)

        created, notice = reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id))

        assert created.status == ReservationStatus.CONFIRMED
        assert created.schedule_id == schedule.id
        assert created.message == "予約が完了しました"
        customer = db.query(Customer).one()
        assert customer.name == "山田 太郎"
        assert customer.name_kana == "ヤマダ タロウ"
        assert customer.line_id == "U-line-1"
        assert customer.last_booking_date is not None
        assert notice.reservation_id == created.id
        assert notice.program_name == "ヨガ"
        assert notice.time_slot == "10:00-11:00"

    def test_existing_customer_is_reused_and_updated(self, db, make_schedule):
        first = make_schedule(date(2025, 7, 1))
        second = make_schedule(date(2025, 7, 2))
        reservation_service.create_reservation(db, reservation_in=_reservation_in(first.id))

        reservation_service.create_reservation(
            db, reservation_in=_reservation_in(second.id, phone="080-0000-0000")
        )

        customer = db.query(Customer).one()
        assert customer.phone == "080-0000-0000"
        assert db.query(Reservation).count() == 2

    def test_capacity_is_enforced(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1), capacity=1)
        reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id, "U-a"))

        with pytest.raises(CapacityExceededError) as exc_info:
            reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id, "U-b"))

        assert exc_info.value.extra == {"capacity": 1, "booked": 1}
        assert db.query(Reservation).count() == 1
        # El cliente creado en la transacción fallida no queda guardado
        assert db.query(Customer).count() == 1

    def test_duplicate_is_rejected(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1))
        reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id))

        with pytest.raises(DuplicateReservationError):
            reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id))

    def test_cancelled_reservation_is_reactivated(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1))
        created, _ = reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id))
        reservation_service.cancel_reservation(db, reservation_id=created.id, reason="体調不良")

        again, _ = reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id))

        assert again.id == created.id
        reservation = db.get(Reservation, created.id)
        assert reservation.status == ReservationStatus.CONFIRMED
        assert reservation.cancelled_at is None
        assert reservation.cancellation_reason is None

    def test_unknown_schedule(self, db):
        with pytest.raises(NotFoundError):
            reservation_service.create_reservation(db, reservation_in=_reservation_in(999))

    def test_cancelled_schedule_is_not_bookable(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1), is_cancelled=True)

        with pytest.raises(ValidationError):
            reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id))


class TestManageReservations:
    def test_cancel_frees_place_and_counts_cancellation(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1), capacity=1)
        created, _ = reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id, "U-a"))

        reservation, notice = reservation_service.cancel_reservation(db, reservation_id=created.id)

        assert reservation.status == ReservationStatus.CANCELLED
        assert reservation.cancelled_at is not None
        assert reservation.customer.cancellation_count == 1
        assert notice is not None
        # La plaza liberada se puede volver a reservar
        reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id, "U-b"))

    def test_cancel_twice_returns_no_notice(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1))
        created, _ = reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id))
        reservation_service.cancel_reservation(db, reservation_id=created.id)

        reservation, notice = reservation_service.cancel_reservation(db, reservation_id=created.id)

        assert notice is None
        assert reservation.customer.cancellation_count == 1

    def test_reconfirm_checks_capacity(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1), capacity=1)
        first, _ = reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id, "U-a"))
        reservation_service.cancel_reservation(db, reservation_id=first.id)
        reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id, "U-b"))

        with pytest.raises(CapacityExceededError):
            reservation_service.update_reservation(
                db,
                reservation_id=first.id,
                reservation_in=ReservationUpdate(status=ReservationStatus.CONFIRMED),
            )

    def test_reconfirm_rejected_on_cancelled_schedule(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1))
        created, _ = reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id))
        reservation_service.cancel_reservation(db, reservation_id=created.id)
        schedule.is_cancelled = True
        db.commit()

        with pytest.raises(ValidationError):
            reservation_service.update_reservation(
                db,
                reservation_id=created.id,
                reservation_in=ReservationUpdate(status=ReservationStatus.CONFIRMED),
            )

        assert db.get(Reservation, created.id).status == ReservationStatus.CANCELLED

    def test_update_to_cancelled_reports_transition(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1))
        created, _ = reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id))

        reservation, just_cancelled = reservation_service.update_reservation(
            db,
            reservation_id=created.id,
            reservation_in=ReservationUpdate(status=ReservationStatus.CANCELLED, cancellation_reason="連絡あり"),
        )

        assert just_cancelled is True
        assert reservation.cancellation_reason == "連絡あり"
        assert reservation.cancelled_at is not None

    def test_list_filters_by_status(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1))
        a, _ = reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id, "U-a"))
        reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id, "U-b"))
        reservation_service.cancel_reservation(db, reservation_id=a.id)

        cancelled = reservation_service.list_reservations(db, status=ReservationStatus.CANCELLED)

        assert [r.id for r in cancelled] == [a.id]

    def test_unsynced_and_mark_synced(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1))
        created, _ = reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id))
        assert [r.id for r in reservation_service.get_unsynced(db)] == [created.id]

        reservation = reservation_service.mark_synced(db, reservation_id=created.id)

        assert reservation.synced_to_sheets is True
        assert reservation.synced_at is not None
        assert reservation_service.get_unsynced(db) == []

    def test_delete(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1))
        created, _ = reservation_service.create_reservation(db, reservation_in=_reservation_in(schedule.id))

        reservation_service.delete_reservation(db, reservation_id=created.id)

        assert db.query(Reservation).count() == 0
        with pytest.raises(NotFoundError):
            reservation_service.delete_reservation(db, reservation_id=created.id)
