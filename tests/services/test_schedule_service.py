"""
Tests del servicio de horarios: calendario agrupado, series recurrentes,
solapamientos de sala y borrado de grupos.
"""
from datetime import date, time
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from studio_booking.core.config import get_settings
from studio_booking.core.exceptions import (
    NotFoundError,
    ScheduleConflictError,
    UpstreamUnavailableError,
    ValidationError,
)
from studio_booking.models.customer import Customer
from studio_booking.models.reservation import Reservation, ReservationStatus
from studio_booking.models.schedule import RepeatKind, Schedule
from studio_booking.repositories.schedule import schedule_repository
from studio_booking.schemas.schedule import ScheduleCreate, ScheduleUpdate, WeekdayPatternCreate
from studio_booking.services.schedule import schedule_service


def _add_reservation(db, schedule, line_id, status=ReservationStatus.CONFIRMED):
    customer = Customer(name=f"客 {line_id}", line_id=line_id)
    db.add(customer)
    db.flush()
    reservation = Reservation(schedule_id=schedule.id, customer_id=customer.id, status=status)
    db.add(reservation)
    db.commit()
    return reservation


class TestScheduleQueries:
    def test_range_groups_by_date_and_orders_by_start(self, db, make_schedule):
        make_schedule(date(2025, 7, 2), time(18, 0), time(19, 0))
        make_schedule(date(2025, 7, 1), time(14, 0), time(15, 0))
        make_schedule(date(2025, 7, 1), time(10, 0), time(11, 0))

        result = schedule_service.get_schedules_by_date_range(
            db, start_date=date(2025, 7, 1), end_date=date(2025, 7, 7)
        )

        assert result.source == "database"
        assert result.warning is None
        assert list(result.schedules) == ["2025-07-01", "2025-07-02"]
        assert [slot.time for slot in result.schedules["2025-07-01"]] == ["10:00 - 11:00", "14:00 - 15:00"]

    def test_range_excludes_cancelled_and_counts_confirmed(self, db, make_schedule):
        active = make_schedule(date(2025, 7, 1), capacity=5)
        make_schedule(date(2025, 7, 1), time(12, 0), time(13, 0), is_cancelled=True)
        _add_reservation(db, active, "U1")
        _add_reservation(db, active, "U2")
        _add_reservation(db, active, "U3", status=ReservationStatus.CANCELLED)

        result = schedule_service.get_schedules_by_date_range(
            db, start_date=date(2025, 7, 1), end_date=date(2025, 7, 1)
        )

        slots = result.schedules["2025-07-01"]
        assert len(slots) == 1
        assert slots[0].booked == 2
        assert slots[0].available == 3
        assert slots[0].program == "ヨガ"
        assert slots[0].color == "bg-green-500"

    def test_range_rejects_start_after_end(self, db):
        with pytest.raises(ValidationError):
            schedule_service.get_schedules_by_date_range(
                db, start_date=date(2025, 7, 8), end_date=date(2025, 7, 1)
            )

    def test_weekly_returns_monday_to_sunday(self, db, make_schedule):
        make_schedule(date(2025, 6, 29))  # domingo anterior, fuera de la semana
        make_schedule(date(2025, 7, 6))

        result = schedule_service.get_weekly_schedules(db, day=date(2025, 7, 2))

        assert result.week_start == date(2025, 6, 30)
        assert result.week_end == date(2025, 7, 6)
        assert list(result.schedules) == ["2025-07-06"]

    def test_database_error_uses_fixture_when_fallback_enabled(self, db, monkeypatch):
        monkeypatch.setattr(get_settings(), "DEMO_FALLBACK_ENABLED", True)
        error = OperationalError("SELECT", {}, Exception("connection refused"))
        with patch.object(schedule_repository, "get_by_date_range", side_effect=error):
            result = schedule_service.get_schedules_by_date_range(
                db, start_date=date(2025, 6, 30), end_date=date(2025, 7, 6)
            )

        assert result.source == "fallback"
        assert result.warning
        assert result.schedules

    def test_database_error_raises_when_fallback_disabled(self, db, monkeypatch):
        monkeypatch.setattr(get_settings(), "DEMO_FALLBACK_ENABLED", False)
        error = OperationalError("SELECT", {}, Exception("connection refused"))
        with patch.object(schedule_repository, "get_by_date_range", side_effect=error):
            with pytest.raises(UpstreamUnavailableError):
                schedule_service.get_schedules_by_date_range(
                    db, start_date=date(2025, 6, 30), end_date=date(2025, 7, 6)
                )

    def test_detail_reports_full(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1), capacity=1)
        _add_reservation(db, schedule, "U1")

        detail = schedule_service.get_schedule(db, schedule_id=schedule.id)

        assert detail.booked == 1
        assert detail.available == 0
        assert detail.status == "full"
        assert detail.studio_name == "スタジオ1"

    def test_detail_not_found(self, db):
        with pytest.raises(NotFoundError):
            schedule_service.get_schedule(db, schedule_id=999)


class TestScheduleCreation:
    def _create_in(self, program, instructor, studio, **kwargs):
        data = {
            "date": date(2025, 7, 1),
            "start_time": time(10, 0),
            "end_time": time(11, 0),
            "program_id": program.id,
            "instructor_id": instructor.id,
            "studio_id": studio.id,
            "capacity": 20,
        }
        data.update(kwargs)
        return ScheduleCreate(**data)

    def test_single_schedule_has_no_group(self, db, program, instructor, studio):
        batch = schedule_service.create_schedules(db, schedule_in=self._create_in(program, instructor, studio))

        assert batch.count == 1
        assert batch.recurring_group_id is None
        assert batch.schedules[0].recurring_type == RepeatKind.NONE

    def test_weekly_series_shares_group(self, db, program, instructor, studio):
        schedule_in = self._create_in(program, instructor, studio, repeat=RepeatKind.WEEKLY, repeat_count=3)

        batch = schedule_service.create_schedules(db, schedule_in=schedule_in)

        assert batch.count == 3
        assert batch.recurring_group_id
        assert [s.date for s in batch.schedules] == [date(2025, 7, 1), date(2025, 7, 8), date(2025, 7, 15)]
        assert {s.recurring_group_id for s in batch.schedules} == {batch.recurring_group_id}

    def test_conflict_rejects_whole_series(self, db, program, instructor, studio, make_schedule):
        existing = make_schedule(date(2025, 7, 8), time(10, 30), time(11, 30))
        schedule_in = self._create_in(program, instructor, studio, repeat=RepeatKind.WEEKLY, repeat_count=3)

        with pytest.raises(ScheduleConflictError) as exc_info:
            schedule_service.create_schedules(db, schedule_in=schedule_in)

        assert exc_info.value.extra["conflicting_schedule_id"] == existing.id
        assert db.query(Schedule).count() == 1

    def test_back_to_back_classes_do_not_conflict(self, db, program, instructor, studio, make_schedule):
        make_schedule(date(2025, 7, 1), time(11, 0), time(12, 0))

        batch = schedule_service.create_schedules(db, schedule_in=self._create_in(program, instructor, studio))

        assert batch.count == 1

    def test_cancelled_schedule_does_not_block_slot(self, db, program, instructor, studio, make_schedule):
        make_schedule(date(2025, 7, 1), is_cancelled=True)

        batch = schedule_service.create_schedules(db, schedule_in=self._create_in(program, instructor, studio))

        assert batch.count == 1

    def test_unknown_program_is_rejected(self, db, program, instructor, studio):
        schedule_in = self._create_in(program, instructor, studio, program_id=999)

        with pytest.raises(ValidationError):
            schedule_service.create_schedules(db, schedule_in=schedule_in)
        assert db.query(Schedule).count() == 0

    def test_missing_repeat_bound_is_rejected(self, db, program, instructor, studio):
        schedule_in = self._create_in(program, instructor, studio, repeat=RepeatKind.DAILY)

        with pytest.raises(ValidationError):
            schedule_service.create_schedules(db, schedule_in=schedule_in)

    def test_weekday_pattern(self, db, program, instructor, studio):
        pattern_in = WeekdayPatternCreate(
            base_date=date(2025, 7, 2),
            start_time=time(19, 0),
            end_time=time(20, 0),
            program_id=program.id,
            instructor_id=instructor.id,
            studio_id=studio.id,
            capacity=10,
            repeat_weeks=2,
            days_of_week=[5, 1, 3, 3],
        )

        batch = schedule_service.create_weekday_pattern(db, pattern_in=pattern_in)

        assert batch.count == 5
        assert all(s.recurring_type == RepeatKind.WEEKLY for s in batch.schedules)
        assert batch.schedules[-1].recurring_end_date == date(2025, 7, 11)


class TestScheduleChanges:
    def test_update_capacity_below_confirmed_is_rejected(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1), capacity=5)
        _add_reservation(db, schedule, "U1")
        _add_reservation(db, schedule, "U2")

        with pytest.raises(ValidationError):
            schedule_service.update_schedule(
                db, schedule_id=schedule.id, schedule_in=ScheduleUpdate(capacity=1)
            )

        updated = schedule_service.update_schedule(
            db, schedule_id=schedule.id, schedule_in=ScheduleUpdate(capacity=2)
        )
        assert updated.capacity == 2

    def test_update_into_overlap_is_rejected(self, db, make_schedule):
        make_schedule(date(2025, 7, 1), time(10, 0), time(11, 0))
        other = make_schedule(date(2025, 7, 1), time(12, 0), time(13, 0))

        with pytest.raises(ScheduleConflictError):
            schedule_service.update_schedule(
                db, schedule_id=other.id, schedule_in=ScheduleUpdate(start_time=time(10, 30))
            )

    def test_cancel_hides_schedule(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1))

        cancelled = schedule_service.cancel_schedule(db, schedule_id=schedule.id, reason="講師都合")

        assert cancelled.is_cancelled is True
        result = schedule_service.get_schedules_by_date_range(
            db, start_date=date(2025, 7, 1), end_date=date(2025, 7, 1)
        )
        assert result.schedules == {}

    def test_delete_schedule_removes_reservations(self, db, make_schedule):
        schedule = make_schedule(date(2025, 7, 1))
        _add_reservation(db, schedule, "U1")

        deleted = schedule_service.delete_schedule(db, schedule_id=schedule.id)

        assert deleted == 1
        assert db.query(Schedule).count() == 0
        assert db.query(Reservation).count() == 0

    def test_delete_group_only_touches_that_group(self, db, make_schedule):
        first = make_schedule(date(2025, 7, 1), recurring_group_id="group-a", recurring_type=RepeatKind.WEEKLY)
        make_schedule(date(2025, 7, 8), recurring_group_id="group-a", recurring_type=RepeatKind.WEEKLY)
        other = make_schedule(date(2025, 7, 2), recurring_group_id="group-b", recurring_type=RepeatKind.WEEKLY)
        _add_reservation(db, first, "U1")
        _add_reservation(db, other, "U2")

        result = schedule_service.delete_recurring_group(db, group_id="group-a")

        assert result.deleted_count == 2
        assert result.deleted_reservations == 1
        db.expire_all()
        assert [s.id for s in db.query(Schedule).all()] == [other.id]
        assert db.query(Reservation).count() == 1

    def test_delete_unknown_group(self, db):
        with pytest.raises(NotFoundError):
            schedule_service.delete_recurring_group(db, group_id="missing")
