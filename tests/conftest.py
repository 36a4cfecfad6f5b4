import os

# Configuración de pruebas antes de importar la aplicación (get_settings está cacheado)
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("DEMO_FALLBACK_ENABLED", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_EMAIL", "admin@estudio-demo.com")
os.environ.setdefault("ADMIN_PASSWORD", "admin-password")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SHEETS_ENABLED", "false")
os.environ.setdefault("MESSAGE_SETTINGS_PATH", "")
os.environ.setdefault("LOG_DIR", "")

from datetime import date, time
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studio_booking.api.deps import get_notification_relay
from studio_booking.core.config import get_settings
from studio_booking.core.security import create_session_token
from studio_booking.db.base import Base
from studio_booking.db.session import _enable_sqlite_foreign_keys, get_db
from studio_booking.main import app
from studio_booking.middleware.rate_limit import limiter
from studio_booking.models.catalog import Instructor, Program, Studio
from studio_booking.models.schedule import Schedule
from studio_booking.services.notification import NotificationRelay


@pytest.fixture(scope="function")
def db_engine():
    """
    Base de datos SQLite en memoria nueva para cada test.

    Los servicios hacen commit/rollback por su cuenta, así que no se envuelve
    el test en una transacción externa.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def relay():
    """Relay de notificaciones simulado (no sale a LINE ni a Sheets)."""
    return MagicMock(spec=NotificationRelay)


@pytest.fixture(scope="function")
def client(db, relay):
    """
    Cliente de prueba con la sesión de test y el relay simulado.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_relay] = lambda: relay
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def admin_headers():
    """Cabecera Bearer con una sesión de administrador válida."""
    settings = get_settings()
    token, _ = create_session_token(str(settings.ADMIN_EMAIL), settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def program(db):
    obj = Program(name="ヨガ", default_duration=60, color_class="bg-green-500", text_color_class="text-white")
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@pytest.fixture(scope="function")
def instructor(db):
    obj = Instructor(name="田中 美香", email="mika.tanaka@studio.com")
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@pytest.fixture(scope="function")
def studio(db):
    obj = Studio(name="スタジオ1", capacity=30)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@pytest.fixture(scope="function")
def make_schedule(db, program, instructor, studio):
    """Fábrica de horarios: make_schedule(date(2025, 7, 1), time(10), time(11), capacity=20)"""
    def _make(on_date: date, start: time = time(10, 0), end: time = time(11, 0), **kwargs):
        data = {
            "date": on_date,
            "start_time": start,
            "end_time": end,
            "capacity": 20,
            "program_id": program.id,
            "instructor_id": instructor.id,
            "studio_id": studio.id,
        }
        data.update(kwargs)
        schedule = Schedule(**data)
        db.add(schedule)
        db.commit()
        db.refresh(schedule)
        return schedule
    return _make
