from typing import List

from sqlalchemy.orm import Session

from studio_booking.repositories.base import BaseRepository
from studio_booking.models.catalog import Instructor, Program, Studio
from studio_booking.schemas.catalog import (
    InstructorCreate, InstructorUpdate,
    ProgramCreate, ProgramUpdate,
    StudioCreate, StudioUpdate,
)


class ProgramRepository(BaseRepository[Program, ProgramCreate, ProgramUpdate]):
    def get_active(self, db: Session) -> List[Program]:
        return db.query(Program).filter(Program.is_active.is_(True)).order_by(Program.name).all()

    def get_by_name(self, db: Session, *, name: str):
        return db.query(Program).filter(Program.name == name).first()


class InstructorRepository(BaseRepository[Instructor, InstructorCreate, InstructorUpdate]):
    def get_active(self, db: Session) -> List[Instructor]:
        return db.query(Instructor).filter(Instructor.is_active.is_(True)).order_by(Instructor.name).all()


class StudioRepository(BaseRepository[Studio, StudioCreate, StudioUpdate]):
    def get_active(self, db: Session) -> List[Studio]:
        return db.query(Studio).filter(Studio.is_active.is_(True)).order_by(Studio.name).all()


program_repository = ProgramRepository(Program)
instructor_repository = InstructorRepository(Instructor)
studio_repository = StudioRepository(Studio)
