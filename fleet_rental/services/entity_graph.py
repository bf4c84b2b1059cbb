"""
Entity Graph Store
──────────────────
Explicit adjacency access to the ownership hierarchy

    Manufacturer → ManufacturerModel → CarModel → FleetCar → Rental

Every traversal is one query per level keyed by parent ids, never a lazy
relationship walk, so planning is deterministic and cheap to reason about.
"""

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterator, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from fleet_rental.models.manufacturer import Manufacturer
from fleet_rental.models.manufacturer_model import ManufacturerModel
from fleet_rental.models.car_model import CarModel
from fleet_rental.models.fleet_car import FleetCar
from fleet_rental.models.rental import Rental

logger = logging.getLogger(__name__)


class EntityKind(str, enum.Enum):
    MANUFACTURER       = "MANUFACTURER"
    MANUFACTURER_MODEL = "MANUFACTURER_MODEL"
    CAR_MODEL          = "CAR_MODEL"
    FLEET_CAR          = "FLEET_CAR"
    RENTAL             = "RENTAL"


@dataclass(frozen=True)
class _Level:
    kind:      EntityKind
    model:     Any
    key:       Any          # primary key column
    parent_fk: Any | None   # column pointing at the level above
    label:     str


# Root first. A level's children live at index + 1.
_HIERARCHY: tuple[_Level, ...] = (
    _Level(EntityKind.MANUFACTURER,       Manufacturer,      Manufacturer.id,        None,                                "Manufacturer"),
    _Level(EntityKind.MANUFACTURER_MODEL, ManufacturerModel, ManufacturerModel.id,   ManufacturerModel.manufacturerId,    "ManufacturerModel"),
    _Level(EntityKind.CAR_MODEL,          CarModel,          CarModel.id,            CarModel.manufacturerModelId,        "CarModel"),
    _Level(EntityKind.FLEET_CAR,          FleetCar,          FleetCar.licensePlate,  FleetCar.carModelId,                 "FleetCar"),
    _Level(EntityKind.RENTAL,             Rental,            Rental.id,              Rental.licensePlate,                 "Rental"),
)
_BY_KIND = {level.kind: i for i, level in enumerate(_HIERARCHY)}


def entity_label(kind: EntityKind) -> str:
    return _HIERARCHY[_BY_KIND[kind]].label


def child_kind(kind: EntityKind) -> EntityKind | None:
    i = _BY_KIND[kind] + 1
    return _HIERARCHY[i].kind if i < len(_HIERARCHY) else None


class EntityGraphStore:
    """Transactional read/write access to the five entity kinds over one session."""

    def __init__(self, db: Session):
        self.db = db

    # ─── Transactions ─────────────────────────────────────────────────────────
    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Commit on clean exit, roll back on every exception path."""
        try:
            yield self.db
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ─── Reads ────────────────────────────────────────────────────────────────
    def get(self, kind: EntityKind, key: Any):
        # Query rather than Session.get so rows removed by bulk deletes are not
        # served back from the identity map
        level = _HIERARCHY[_BY_KIND[kind]]
        return self.db.execute(select(level.model).where(level.key == key)).scalar_one_or_none()

    def exists(self, kind: EntityKind, key: Any) -> bool:
        level = _HIERARCHY[_BY_KIND[kind]]
        return self.db.execute(select(level.key).where(level.key == key)).first() is not None

    def child_keys(self, kind: EntityKind, parent_keys: Sequence[Any]) -> list:
        """Keys of the direct children of `parent_keys`, where `kind` is the child level."""
        if not parent_keys:
            return []
        level = _HIERARCHY[_BY_KIND[kind]]
        if level.parent_fk is None:
            raise ValueError(f"{level.label} has no parent level")
        rows = self.db.execute(
            select(level.key).where(level.parent_fk.in_(list(parent_keys))).order_by(level.key)
        ).scalars().all()
        return list(rows)

    def overlapping_rentals(self, license_plate: str, start: date, end: date) -> list[Rental]:
        """Active rentals on the car whose [pickUpDate, returnDate) intersects [start, end)."""
        return list(self.db.execute(
            select(Rental)
            .where(
                Rental.licensePlate == license_plate,
                Rental.actualReturnDate.is_(None),
                Rental.pickUpDate < end,
                Rental.returnDate > start,
            )
            .order_by(Rental.pickUpDate, Rental.id)
        ).scalars().all())

    # ─── Writes ───────────────────────────────────────────────────────────────
    def insert(self, entity):
        self.db.add(entity)
        self.db.flush()
        return entity

    def delete_keys(self, kind: EntityKind, keys: Sequence[Any]) -> int:
        """Bulk-delete rows of one level. Returns the number of rows removed."""
        if not keys:
            return 0
        level = _HIERARCHY[_BY_KIND[kind]]
        result = self.db.execute(delete(level.model).where(level.key.in_(list(keys))))
        return result.rowcount

    def lock_fleet_car(self, license_plate: str) -> bool:
        """
        Take the write lock for the car's row by bumping its lockVersion.
        Row lock on PostgreSQL, database write lock on SQLite; held until the
        surrounding transaction ends. Returns False if the plate is unknown.
        """
        result = self.db.execute(
            update(FleetCar)
            .where(FleetCar.licensePlate == license_plate)
            .values(lockVersion=FleetCar.lockVersion + 1)
        )
        return result.rowcount > 0
