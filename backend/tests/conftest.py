import os
import sys

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef")

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mocards import models  # noqa: F401
from mocards.database import Base
from mocards.models.actor import AdminUser, Clinic
from mocards.services.perk_templates import load_perk_templates


def build_session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session_factory():
    return build_session_factory()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    load_perk_templates(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin(db):
    admin = AdminUser(username="admin", password_hash="hashed")
    db.add(admin)
    db.commit()
    return admin


@pytest.fixture
def clinic(db):
    clinic = Clinic(
        clinic_code="CAV001",
        clinic_name="Cavite Smile Dental",
        password_hash="hashed",
        commission_rate=15.0,
    )
    db.add(clinic)
    db.commit()
    return clinic


@pytest.fixture
def other_clinic(db):
    clinic = Clinic(clinic_code="MNL001", clinic_name="Manila Dental Care", password_hash="hashed")
    db.add(clinic)
    db.commit()
    return clinic


def build_test_app(testing_session_local):
    from fastapi import FastAPI

    from mocards.api import auth, batches, cards, deps, perks
    from mocards.errors import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
    for module in (auth, batches, cards, perks):
        app.include_router(module.router, prefix="/api")

    def override_get_db():
        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[deps.get_db] = override_get_db
    return app
