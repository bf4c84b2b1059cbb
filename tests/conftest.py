"""
Pytest configuration and fixtures.
Every test gets its own SQLite file, never the database configured for the app.
"""

import os
import tempfile

# Point the app settings at a throwaway database BEFORE importing the package
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "fleet_rental_test.db")
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["APP_ENV"] = "test"

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from fleet_rental.database import Base, create_db_engine, create_session_factory
from fleet_rental.models import (
    User, Manufacturer, ManufacturerModel, CarModel, FleetCar, Rental,
)


@pytest.fixture(scope="session", autouse=True)
def cleanup_app_database():
    yield
    if os.path.exists(TEST_DB_PATH):
        try:
            os.remove(TEST_DB_PATH)
        except PermissionError:
            pass  # Windows may have file locked


@pytest.fixture
def engine(tmp_path):
    test_engine = create_db_engine(f"sqlite:///{tmp_path / 'fleet.db'}")
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def seed_fleet(db) -> SimpleNamespace:
    """
    Two manufacturers with their full subtrees:

        Toyota ─ Corolla ─ 2020 manual ─ ABC-123 (1 active, 1 closed rental)
               │         │             └ DEF-456
               │         └ 2022 auto   ─ XYZ-999
               └ Yaris
        Honda  ─ Civic   ─ 2021 auto   ─ HON-001 (1 active rental)
    """
    alice = User(username="alice", firstName="Alice", lastName="Driver", email="alice@example.com")
    bob   = User(username="bob", firstName="Bob", lastName="Renter", email="bob@example.com")
    toyota = Manufacturer(name="Toyota")
    honda  = Manufacturer(name="Honda")
    db.add_all([alice, bob, toyota, honda])
    db.flush()

    corolla = ManufacturerModel(name="Corolla", manufacturerId=toyota.id)
    yaris   = ManufacturerModel(name="Yaris", manufacturerId=toyota.id)
    civic   = ManufacturerModel(name="Civic", manufacturerId=honda.id)
    db.add_all([corolla, yaris, civic])
    db.flush()

    corolla_2020 = CarModel(manufacturerModelId=corolla.id, productionYear=2020, isManualGear=True,
                            dailyPrice=Decimal("50.00"), dayDelayPrice=Decimal("20.00"))
    corolla_2022 = CarModel(manufacturerModelId=corolla.id, productionYear=2022, isManualGear=False,
                            dailyPrice=Decimal("65.00"), dayDelayPrice=Decimal("25.00"))
    civic_2021   = CarModel(manufacturerModelId=civic.id, productionYear=2021, isManualGear=False,
                            dailyPrice=Decimal("55.00"), dayDelayPrice=Decimal("22.50"))
    db.add_all([corolla_2020, corolla_2022, civic_2021])
    db.flush()

    db.add_all([
        FleetCar(licensePlate="ABC-123", carModelId=corolla_2020.id, imagePath="abc.jpg"),
        FleetCar(licensePlate="DEF-456", carModelId=corolla_2020.id),
        FleetCar(licensePlate="XYZ-999", carModelId=corolla_2022.id),
        FleetCar(licensePlate="HON-001", carModelId=civic_2021.id),
    ])
    db.flush()

    active = Rental(licensePlate="ABC-123", pickUpDate=date(2024, 1, 12), returnDate=date(2024, 1, 18),
                    userId=alice.id)
    closed = Rental(licensePlate="ABC-123", pickUpDate=date(2023, 12, 1), returnDate=date(2023, 12, 5),
                    actualReturnDate=date(2023, 12, 5), userId=alice.id)
    honda_active = Rental(licensePlate="HON-001", pickUpDate=date(2024, 2, 1), returnDate=date(2024, 2, 10),
                          userId=bob.id)
    db.add_all([active, closed, honda_active])
    db.commit()

    return SimpleNamespace(
        alice=alice.id, bob=bob.id,
        toyota=toyota.id, honda=honda.id,
        corolla=corolla.id, yaris=yaris.id, civic=civic.id,
        corolla_2020=corolla_2020.id, corolla_2022=corolla_2022.id, civic_2021=civic_2021.id,
        active_rental=active.id, closed_rental=closed.id, honda_rental=honda_active.id,
    )


@pytest.fixture
def fleet(db):
    return seed_fleet(db)


def row_counts(db) -> dict:
    return {
        model.__name__: db.query(model).count()
        for model in (Manufacturer, ManufacturerModel, CarModel, FleetCar, Rental)
    }
