from typing import Optional

from sqlalchemy.orm import Session

from studio_booking.repositories.base import BaseRepository
from studio_booking.models.customer import Customer
from studio_booking.schemas.customer import CustomerCreate, CustomerUpdate


class CustomerRepository(BaseRepository[Customer, CustomerCreate, CustomerUpdate]):
    def get_by_line_id(self, db: Session, *, line_id: str) -> Optional[Customer]:
        """
        Obtener un cliente por su LINE ID.

        Args:
            db: Sesión de base de datos
            line_id: Identificador de usuario de LINE
        """
        return db.query(Customer).filter(Customer.line_id == line_id).first()


customer_repository = CustomerRepository(Customer)
