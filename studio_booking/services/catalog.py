import logging
from typing import Any, List, Tuple

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from studio_booking.core.config import get_settings
from studio_booking.core.exceptions import NotFoundError, UpstreamUnavailableError, ValidationError
from studio_booking.db.session import write_transaction
from studio_booking.models.customer import Customer
from studio_booking.repositories.base import BaseRepository
from studio_booking.repositories.catalog import instructor_repository, program_repository, studio_repository
from studio_booking.repositories.customer import customer_repository
from studio_booking.schemas.catalog import Instructor, Program, Studio
from studio_booking.schemas.customer import CustomerUpdate
from studio_booking.services.fixtures import FIXTURE_INSTRUCTORS, FIXTURE_PROGRAMS, FIXTURE_STUDIOS

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Programas, instructores y salas. Los listados públicos recurren a los
    datos de demostración si la base de datos no responde.
    """

    def list_programs(self, db: Session) -> Tuple[List[Program], str]:
        return self._list_active(db, program_repository, Program, FIXTURE_PROGRAMS, "programas")

    def list_instructors(self, db: Session) -> Tuple[List[Instructor], str]:
        return self._list_active(db, instructor_repository, Instructor, FIXTURE_INSTRUCTORS, "instructores")

    def list_studios(self, db: Session) -> Tuple[List[Studio], str]:
        return self._list_active(db, studio_repository, Studio, FIXTURE_STUDIOS, "salas")

    def _list_active(self, db: Session, repository, schema, fixtures, label: str) -> Tuple[List[Any], str]:
        """
        Returns:
            Tupla (elementos, origen) con origen "database" o "fallback"
        """
        try:
            items = repository.get_active(db)
            return [schema.model_validate(item) for item in items], "database"
        except (OperationalError, DBAPIError) as e:
            db.rollback()
            if not get_settings().DEMO_FALLBACK_ENABLED:
                logger.error(f"Error listando {label}: {e}")
                raise UpstreamUnavailableError("La base de datos no está disponible") from e
            logger.warning(f"Base de datos no disponible, {label} de demostración: {e}")
            return list(fixtures), "fallback"

    def create(self, db: Session, repository: BaseRepository, obj_in, label: str):
        with write_transaction(db, f"create_{label}"):
            try:
                obj = repository.create(db, obj_in=obj_in)
            except IntegrityError as e:
                raise ValidationError(f"Ya existe un {label} con esos datos") from e
        logger.info(f"{label} {obj.id} creado")
        return obj

    def update(self, db: Session, repository: BaseRepository, obj_id: int, obj_in, label: str):
        with write_transaction(db, f"update_{label}"):
            obj = repository.get(db, id=obj_id)
            if not obj:
                raise NotFoundError(f"{label} {obj_id} no encontrado")
            try:
                obj = repository.update(db, db_obj=obj, obj_in=obj_in)
            except IntegrityError as e:
                raise ValidationError(f"Ya existe un {label} con esos datos") from e
        return obj

    def deactivate(self, db: Session, repository: BaseRepository, obj_id: int, label: str):
        """
        Baja lógica: los horarios existentes siguen referenciando el elemento.
        """
        with write_transaction(db, f"deactivate_{label}"):
            obj = repository.get(db, id=obj_id)
            if not obj:
                raise NotFoundError(f"{label} {obj_id} no encontrado")
            obj = repository.update(db, db_obj=obj, obj_in={"is_active": False})
        logger.info(f"{label} {obj_id} desactivado")
        return obj

    # Clientes

    def get_customer(self, db: Session, *, customer_id: int) -> Customer:
        customer = customer_repository.get(db, id=customer_id)
        if not customer:
            raise NotFoundError(f"Cliente {customer_id} no encontrado")
        return customer

    def update_customer(self, db: Session, *, customer_id: int, customer_in: CustomerUpdate) -> Customer:
        with write_transaction(db, "update_customer"):
            customer = self.get_customer(db, customer_id=customer_id)
            customer = customer_repository.update(db, db_obj=customer, obj_in=customer_in)
        return customer


catalog_service = CatalogService()
