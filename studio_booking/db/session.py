import logging
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from studio_booking.core.config import get_settings
from studio_booking.core.exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)


def _display_url(db_url: str) -> str:
    # Ocultar credenciales en el log
    if "@" in db_url:
        scheme = db_url.split("://")[0]
        host_info = db_url.split("@", 1)[1]
        return f"{scheme}://***@{host_info}"
    return db_url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(db_url: str) -> Engine:
    """
    Crea el engine de SQLAlchemy para la URL indicada.

    PostgreSQL usa pool con reciclado corto (pgbouncer de Supabase cierra
    conexiones inactivas); SQLite se usa en desarrollo local.
    """
    if db_url.startswith("sqlite"):
        engine = create_engine(db_url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_engine(
            db_url,
            echo=False,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=180,
            connect_args={
                "connect_timeout": 10,
                "options": "-c statement_timeout=30000",
            },
        )
    logger.info(f"Engine creado: {_display_url(db_url)}")
    return engine


@lru_cache()
def get_session_factory() -> sessionmaker:
    """Fábrica de sesiones del proceso, construida en el primer uso."""
    settings = get_settings()
    engine = build_engine(settings.DATABASE_URL)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependencia para obtener la sesión de DB (una por request)
def get_db():
    db: Session = get_session_factory()()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Error de SQLAlchemy en la sesión: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def write_transaction(db: Session, operation: str):
    """
    Envuelve una operación de escritura de un servicio.

    Cualquier excepción deshace la transacción. Los errores de conexión o del
    driver se traducen a `UpstreamUnavailableError`; `IntegrityError` y los
    errores de dominio se propagan tal cual para que el servicio los trate.
    """
    try:
        yield db
    except IntegrityError:
        db.rollback()
        raise
    except (OperationalError, DBAPIError) as e:
        db.rollback()
        logger.error(f"Error de base de datos en '{operation}': {e}")
        raise UpstreamUnavailableError("La base de datos no está disponible") from e
    except Exception:
        db.rollback()
        raise
