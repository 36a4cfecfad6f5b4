from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from studio_booking.db.base_class import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Acceso genérico a una tabla: lectura por id, alta, modificación y baja.

    Las escrituras reciben `commit`. Con `commit=False` solo hacen flush y el
    commit queda a cargo del servicio que abrió la transacción.
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        """Fila con ese id, o None."""
        return db.query(self.model).filter(self.model.id == id).first()

    def create(self, db: Session, *, obj_in: Union[CreateSchemaType, Dict[str, Any]], commit: bool = True) -> ModelType:
        """
        Inserta una fila a partir de un schema o de un diccionario de columnas.

        Args:
            db: Sesión activa
            obj_in: Valores de la nueva fila
            commit: False para dejar la fila solo en flush

        Returns:
            La instancia ya persistida (con id asignado)
        """
        # model_dump() conserva date/time como objetos de Python
        values = dict(obj_in) if isinstance(obj_in, dict) else obj_in.model_dump()

        db_obj = self.model(**values)
        db.add(db_obj)
        self._persist(db, db_obj, commit)
        return db_obj

    def update(
        self,
        db: Session,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        commit: bool = True
    ) -> ModelType:
        """
        Copia sobre `db_obj` los campos enviados que sean columnas del modelo.

        De un schema solo se toman los campos fijados explícitamente
        (exclude_unset), así que un None enviado sí borra el valor.
        """
        changes = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        for attr in inspect(self.model).column_attrs:
            if attr.key in changes:
                setattr(db_obj, attr.key, changes[attr.key])
        db.add(db_obj)
        self._persist(db, db_obj, commit)
        return db_obj

    def remove(self, db: Session, *, id: int, commit: bool = True) -> ModelType:
        """
        Borra la fila con ese id.

        Raises:
            ValueError: No hay fila con ese id
        """
        db_obj = self.get(db, id=id)
        if db_obj is None:
            raise ValueError(f"{self.model.__name__} {id} no existe")

        db.delete(db_obj)
        if commit:
            db.commit()
        else:
            db.flush()
        return db_obj

    def exists(self, db: Session, id: int) -> bool:
        subquery = db.query(self.model.id).filter(self.model.id == id)
        return db.query(subquery.exists()).scalar()

    @staticmethod
    def _persist(db: Session, db_obj: ModelType, commit: bool) -> None:
        if commit:
            db.commit()
            db.refresh(db_obj)
        else:
            db.flush()
