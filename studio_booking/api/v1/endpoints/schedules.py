from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from studio_booking.core.security import require_session
from studio_booking.db.session import get_db
from studio_booking.schemas.auth import TokenPayload
from studio_booking.schemas.schedule import (
    RecurringGroupDeleted,
    Schedule,
    ScheduleBatch,
    ScheduleCancel,
    ScheduleCreate,
    ScheduleDetail,
    ScheduleRange,
    ScheduleUpdate,
    WeekdayPatternCreate,
    WeeklySchedule,
)
from studio_booking.services.schedule import schedule_service

router = APIRouter()


@router.get("", response_model=ScheduleRange)
async def get_schedules(
    response: Response,
    start: date = Query(..., description="Fecha de inicio (YYYY-MM-DD)"),
    end: date = Query(..., description="Fecha de fin (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
) -> Any:
    """
    Get Schedules by Date Range

    Returns the non-cancelled schedules between `start` and `end` (inclusive),
    grouped by date and ordered by start time, with the confirmed booking count
    of each one.

    When the database is unavailable and demo fallback is enabled the response
    carries `source="fallback"`, a `warning` and the `X-Data-Source: fallback`
    header.

    Raises:
        HTTPException 400: `start` is after `end`.
        HTTPException 503: Database unavailable and fallback disabled.
    """
    result = schedule_service.get_schedules_by_date_range(db, start_date=start, end_date=end)
    response.headers["X-Data-Source"] = result.source
    return result


@router.get("/weekly", response_model=WeeklySchedule)
async def get_weekly_schedules(
    response: Response,
    day: Optional[date] = Query(None, alias="date", description="Cualquier día de la semana; por defecto hoy"),
    db: Session = Depends(get_db),
) -> Any:
    """
    Get Weekly Schedule

    Returns the Monday-to-Sunday week that contains `date` (today in the studio
    time zone when omitted).
    """
    result = schedule_service.get_weekly_schedules(db, day=day)
    response.headers["X-Data-Source"] = result.source
    return result


@router.post("", response_model=ScheduleBatch, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    schedule_in: ScheduleCreate,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    Create Schedule

    Creates a single schedule (`repeat="none"`) or a recurring series
    (`daily`, `weekly`, `monthly`, `yearly`) bounded by exactly one of
    `repeat_end_date` or `repeat_count`. All occurrences share a new
    `recurring_group_id` and are created atomically.

    Permissions:
        - Requires an admin session.

    Raises:
        HTTPException 400: Invalid repeat bounds or unknown program/instructor/studio.
        HTTPException 409: An occurrence overlaps another class in the same studio.
    """
    return schedule_service.create_schedules(db, schedule_in=schedule_in)


@router.post("/recurring/weekdays", response_model=ScheduleBatch, status_code=status.HTTP_201_CREATED)
async def create_weekday_pattern(
    pattern_in: WeekdayPatternCreate,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    Create Weekday Pattern

    Creates the same class on the given `days_of_week` (0=Sunday ... 6=Saturday)
    for `repeat_weeks` weeks starting from `base_date`.
    """
    return schedule_service.create_weekday_pattern(db, pattern_in=pattern_in)


@router.delete("/recurring/{group_id}", response_model=RecurringGroupDeleted)
async def delete_recurring_group(
    group_id: str,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    Delete Recurring Group

    Deletes every schedule of the series and all of their reservations in one
    transaction.

    Raises:
        HTTPException 404: No schedule belongs to the group.
    """
    return schedule_service.delete_recurring_group(db, group_id=group_id)


@router.get("/{schedule_id}", response_model=ScheduleDetail)
async def get_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
) -> Any:
    """
    Get Schedule Detail

    Returns a schedule with its booked/available counts and `status`
    (`available` or `full`).
    """
    return schedule_service.get_schedule(db, schedule_id=schedule_id)


@router.put("/{schedule_id}", response_model=Schedule)
async def update_schedule(
    schedule_id: int,
    schedule_in: ScheduleUpdate,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    Update Schedule

    Updates date, time, program, instructor, studio or capacity of a single
    schedule. The capacity cannot drop below the confirmed reservations.
    """
    return schedule_service.update_schedule(db, schedule_id=schedule_id, schedule_in=schedule_in)


@router.post("/{schedule_id}/cancel", response_model=Schedule)
async def cancel_schedule(
    schedule_id: int,
    cancel_in: Optional[ScheduleCancel] = None,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    Cancel Schedule

    Marks the schedule as cancelled; it no longer appears in listings nor
    accepts reservations.
    """
    reason = cancel_in.reason if cancel_in else None
    return schedule_service.cancel_schedule(db, schedule_id=schedule_id, reason=reason)


@router.delete("/{schedule_id}")
async def delete_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    Delete Schedule

    Deletes a single schedule and its reservations.
    """
    deleted_reservations = schedule_service.delete_schedule(db, schedule_id=schedule_id)
    return {"id": schedule_id, "deleted": True, "deleted_reservations": deleted_reservations}
