from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.orm import Session

from studio_booking.api.deps import get_notification_relay
from studio_booking.core.security import require_session
from studio_booking.db.session import get_db
from studio_booking.middleware.rate_limit import limiter, reservation_rate_limit
from studio_booking.models.reservation import Reservation as ReservationModel
from studio_booking.models.reservation import ReservationStatus
from studio_booking.schemas.auth import TokenPayload
from studio_booking.schemas.reservation import (
    ReservationCancel,
    ReservationCreate,
    ReservationCreated,
    ReservationScheduleInfo,
    ReservationUpdate,
    ReservationWithDetails,
    UnsyncedReservations,
)
from studio_booking.services.notification import NotificationRelay
from studio_booking.services.reservation import build_notice, reservation_service

router = APIRouter()


def to_details(reservation: ReservationModel) -> ReservationWithDetails:
    """Serializa una reserva con su horario (nombres de programa, instructor y sala) y su cliente"""
    result = ReservationWithDetails.model_validate(reservation)
    schedule = reservation.schedule
    if schedule is not None:
        result.schedule = ReservationScheduleInfo(
            id=schedule.id,
            date=schedule.date,
            start_time=schedule.start_time,
            end_time=schedule.end_time,
            program_name=schedule.program.name if schedule.program else None,
            instructor_name=schedule.instructor.name if schedule.instructor else None,
            studio_name=schedule.studio.name if schedule.studio else None,
        )
    return result


@router.post("", response_model=ReservationCreated, status_code=status.HTTP_201_CREATED)
@limiter.limit(reservation_rate_limit)
async def create_reservation(
    request: Request,
    reservation_in: ReservationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    relay: NotificationRelay = Depends(get_notification_relay),
) -> Any:
    """
    Create Reservation

    Public booking endpoint used by the LINE booking form. Gets or creates the
    customer by LINE ID, then confirms the reservation if the class still has
    free places. The capacity check and the insert run in one transaction with
    the schedule row locked.

    After the response is sent, the booking is exported to Google Sheets and a
    LINE confirmation is pushed (best effort).

    Raises:
        HTTPException 404: Schedule not found.
        HTTPException 400: Schedule is cancelled.
        HTTPException 409: Class is full (`capacity_exceeded`) or the customer
            already holds a reservation (`duplicate_reservation`).
        HTTPException 429: Rate limit exceeded.
    """
    created, notice = reservation_service.create_reservation(db, reservation_in=reservation_in)
    background_tasks.add_task(relay.notify_reservation_completed, notice)
    return created


@router.get("", response_model=List[ReservationWithDetails])
async def list_reservations(
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    schedule_id: Optional[int] = None,
    skip: int = 0,
    limit: int = Query(100, le=500),
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    List Reservations

    Returns reservations newest first, optionally filtered by status or schedule.
    """
    reservations = reservation_service.list_reservations(
        db, status=status_filter, schedule_id=schedule_id, skip=skip, limit=limit
    )
    return [to_details(r) for r in reservations]


@router.get("/unsynced", response_model=UnsyncedReservations)
async def get_unsynced_reservations(
    since: Optional[datetime] = None,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    Get Unsynced Reservations

    Confirmed reservations not yet exported to the spreadsheet, optionally
    only those created after `since`.
    """
    reservations = reservation_service.get_unsynced(db, since=since)
    return UnsyncedReservations(
        reservations=[to_details(r) for r in reservations],
        count=len(reservations),
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/{reservation_id}", response_model=ReservationWithDetails)
async def get_reservation(
    reservation_id: int,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """Get Reservation"""
    return to_details(reservation_service.get_reservation(db, reservation_id=reservation_id))


@router.put("/{reservation_id}", response_model=ReservationWithDetails)
async def update_reservation(
    reservation_id: int,
    reservation_in: ReservationUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
    relay: NotificationRelay = Depends(get_notification_relay),
) -> Any:
    """
    Update Reservation

    Changes status, booking type or cancellation reason. Moving a reservation
    back to `confirmed` re-checks the class capacity; moving it to `cancelled`
    notifies the customer.

    Raises:
        HTTPException 404: Reservation not found.
        HTTPException 409: Class is full.
    """
    reservation, just_cancelled = reservation_service.update_reservation(
        db, reservation_id=reservation_id, reservation_in=reservation_in
    )
    if just_cancelled:
        background_tasks.add_task(relay.notify_cancellation, build_notice(reservation))
    return to_details(reservation)


@router.post("/{reservation_id}/cancel", response_model=ReservationWithDetails)
async def cancel_reservation(
    reservation_id: int,
    background_tasks: BackgroundTasks,
    cancel_in: Optional[ReservationCancel] = None,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
    relay: NotificationRelay = Depends(get_notification_relay),
) -> Any:
    """
    Cancel Reservation

    Cancels the reservation, frees its place and pushes the cancellation
    message to the customer.
    """
    reservation, notice = reservation_service.cancel_reservation(
        db, reservation_id=reservation_id, reason=cancel_in.reason if cancel_in else None
    )
    if notice is not None:
        background_tasks.add_task(relay.notify_cancellation, notice)
    return to_details(reservation)


@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reservation(
    reservation_id: int,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> None:
    """Delete Reservation"""
    reservation_service.delete_reservation(db, reservation_id=reservation_id)


@router.put("/{reservation_id}/mark-synced", response_model=ReservationWithDetails)
async def mark_reservation_synced(
    reservation_id: int,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    Mark Reservation Synced

    Sets `synced_to_sheets=true` and `synced_at=now`. Used by the spreadsheet
    script after importing a row.
    """
    return to_details(reservation_service.mark_synced(db, reservation_id=reservation_id))
