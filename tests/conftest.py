"""
Shared fixtures: an in-memory database per test, model factories and an
authenticated TestClient.
"""

import itertools
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.pop("MP_ACCESS_TOKEN", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from academy_api.auth import create_access_token
from academy_api.database import get_db, init_db
from academy_api.models import (
    Academy,
    AcademyClass,
    Inscription,
    InscriptionStatus,
    PaymentType,
    User,
    UserMembership,
    UserRole,
)


@pytest.fixture
def engine():
    """A fresh in-memory database; StaticPool keeps every session on one connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ============================================
# FACTORIES
# ============================================


@pytest.fixture
def academy(db):
    academy = Academy(name="Gracie Barra Centro", description="Main academy")
    db.add(academy)
    db.commit()
    db.refresh(academy)
    return academy


@pytest.fixture
def other_academy(db):
    academy = Academy(name="Alliance Norte")
    db.add(academy)
    db.commit()
    db.refresh(academy)
    return academy


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role=UserRole.STUDENT, academy=None, **kwargs):
        n = next(counter)
        user = User(
            username=f"{role.value}_{n}",
            email=f"{role.value}_{n}@example.com",
            name=f"{role.value.title()} {n}",
            role=role.value,
            academy_id=academy.id if academy else None,
            is_active=True,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user, academy):
    return make_user(UserRole.ACADEMY_ADMIN, academy)


@pytest.fixture
def super_admin(make_user):
    return make_user(UserRole.SUPER_ADMIN)


@pytest.fixture
def student(make_user, academy):
    return make_user(UserRole.STUDENT, academy)


@pytest.fixture
def make_class(db, academy):
    counter = itertools.count(1)

    def _make(capacity=10, price=None, enrolled_count=0, is_active=True, academy_id=None, **kwargs):
        academy_class = AcademyClass(
            academy_id=academy_id or academy.id,
            name=f"No-Gi Fundamentals {next(counter)}",
            capacity=capacity,
            price=price,
            currency="USD",
            enrolled_count=enrolled_count,
            is_active=is_active,
            **kwargs,
        )
        db.add(academy_class)
        db.commit()
        db.refresh(academy_class)
        return academy_class

    return _make


@pytest.fixture
def make_membership(db, academy):
    def _make(user, credits_remaining=5, **kwargs):
        membership = UserMembership(
            user_id=user.id,
            academy_id=kwargs.pop("academy_id", academy.id),
            name="10-class pack",
            credits_remaining=credits_remaining,
            is_active=True,
            **kwargs,
        )
        db.add(membership)
        db.commit()
        db.refresh(membership)
        return membership

    return _make


@pytest.fixture
def make_inscription(db, admin):
    """Insert an inscription row directly, bypassing the capacity ledger."""

    def _make(student, academy_class, status=InscriptionStatus.CONFIRMED):
        inscription = Inscription(
            student_id=student.id,
            class_id=academy_class.id,
            academy_id=academy_class.academy_id,
            processed_by_admin_id=admin.id,
            status=status.value,
            payment_type=PaymentType.COMPLIMENTARY.value,
            requested_payment_type=PaymentType.COMPLIMENTARY.value,
        )
        db.add(inscription)
        db.commit()
        db.refresh(inscription)
        return inscription

    return _make


# ============================================
# HTTP
# ============================================


@pytest.fixture
def client(session_factory):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user):
    token = create_access_token({"sub": user.username, "role": user.role})
    return {"Authorization": f"Bearer {token}"}
