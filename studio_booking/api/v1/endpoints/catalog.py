from typing import Any, List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from studio_booking.core.security import require_session
from studio_booking.db.session import get_db
from studio_booking.repositories.catalog import instructor_repository, program_repository, studio_repository
from studio_booking.schemas.auth import TokenPayload
from studio_booking.schemas.catalog import (
    Instructor, InstructorCreate, InstructorUpdate,
    Program, ProgramCreate, ProgramUpdate,
    Studio, StudioCreate, StudioUpdate,
)
from studio_booking.services.catalog import catalog_service

programs_router = APIRouter()
instructors_router = APIRouter()
studios_router = APIRouter()


# Programs

@programs_router.get("", response_model=List[Program])
async def list_programs(response: Response, db: Session = Depends(get_db)) -> Any:
    """
    List Programs

    Active programs ordered by name. Falls back to the demo catalog
    (`X-Data-Source: fallback`) when the database is unavailable.
    """
    programs, source = catalog_service.list_programs(db)
    response.headers["X-Data-Source"] = source
    return programs


@programs_router.post("", response_model=Program, status_code=status.HTTP_201_CREATED)
async def create_program(
    program_in: ProgramCreate,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """Create Program"""
    return catalog_service.create(db, program_repository, program_in, "programa")


@programs_router.put("/{program_id}", response_model=Program)
async def update_program(
    program_id: int,
    program_in: ProgramUpdate,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """Update Program"""
    return catalog_service.update(db, program_repository, program_id, program_in, "programa")


@programs_router.delete("/{program_id}", response_model=Program)
async def deactivate_program(
    program_id: int,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    Deactivate Program

    Soft delete: existing schedules keep referencing the program.
    """
    return catalog_service.deactivate(db, program_repository, program_id, "programa")


# Instructors

@instructors_router.get("", response_model=List[Instructor])
async def list_instructors(response: Response, db: Session = Depends(get_db)) -> Any:
    """List Instructors"""
    instructors, source = catalog_service.list_instructors(db)
    response.headers["X-Data-Source"] = source
    return instructors


@instructors_router.post("", response_model=Instructor, status_code=status.HTTP_201_CREATED)
async def create_instructor(
    instructor_in: InstructorCreate,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """Create Instructor"""
    return catalog_service.create(db, instructor_repository, instructor_in, "instructor")


@instructors_router.put("/{instructor_id}", response_model=Instructor)
async def update_instructor(
    instructor_id: int,
    instructor_in: InstructorUpdate,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """Update Instructor"""
    return catalog_service.update(db, instructor_repository, instructor_id, instructor_in, "instructor")


@instructors_router.delete("/{instructor_id}", response_model=Instructor)
async def deactivate_instructor(
    instructor_id: int,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """Deactivate Instructor"""
    return catalog_service.deactivate(db, instructor_repository, instructor_id, "instructor")


# Studios

@studios_router.get("", response_model=List[Studio])
async def list_studios(response: Response, db: Session = Depends(get_db)) -> Any:
    """List Studios"""
    studios, source = catalog_service.list_studios(db)
    response.headers["X-Data-Source"] = source
    return studios


@studios_router.post("", response_model=Studio, status_code=status.HTTP_201_CREATED)
async def create_studio(
    studio_in: StudioCreate,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """Create Studio"""
    return catalog_service.create(db, studio_repository, studio_in, "sala")


@studios_router.put("/{studio_id}", response_model=Studio)
async def update_studio(
    studio_id: int,
    studio_in: StudioUpdate,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """Update Studio"""
    return catalog_service.update(db, studio_repository, studio_id, studio_in, "sala")


@studios_router.delete("/{studio_id}", response_model=Studio)
async def deactivate_studio(
    studio_id: int,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """Deactivate Studio"""
    return catalog_service.deactivate(db, studio_repository, studio_id, "sala")
