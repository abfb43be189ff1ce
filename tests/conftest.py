"""Pytest configuration and shared fixtures."""

import os
from datetime import date
from decimal import Decimal

# Point settings at an in-memory store BEFORE anything imports equb.services.db
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from equb.models import Base, Group, RoundCadence  # noqa: E402
from equb.schemas.group import GroupConfig  # noqa: E402
from equb.services.equb_service import EqubService  # noqa: E402
from equb.services.round_progression import RoundProgression  # noqa: E402

ADMIN = "admin-1"


@pytest.fixture
def db_session():
    """Create test database session."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def service(db_session):
    """EqubService bound to the test session."""
    return EqubService(db_session)


@pytest.fixture
def group_config():
    """Factory for group configurations with sensible defaults."""

    def _config(**overrides) -> GroupConfig:
        values = {
            "name": "Merkato Traders",
            "contribution_amount": Decimal("1000.00"),
            "max_slots": 3,
            "round_cadence": RoundCadence.MONTHLY,
            "start_date": date(2024, 1, 1),
            "seed_admin_identity": ADMIN,
            "seed_admin_name": "Abebe",
        }
        values.update(overrides)
        return GroupConfig(**values)

    return _config


@pytest.fixture
def build_group():
    """Factory for unsaved Group aggregates (no members)."""

    def _build(
        max_slots: int = 3,
        cadence: RoundCadence = RoundCadence.MONTHLY,
        start_date: date = date(2024, 1, 1),
        contribution: Decimal = Decimal("1000.00"),
    ) -> Group:
        group = Group(
            code="E000001",
            name="Test Equb",
            contribution_amount=contribution,
            max_slots=max_slots,
            round_cadence=cadence,
            start_date=start_date,
        )
        RoundProgression().initialize(group)
        return group

    return _build
