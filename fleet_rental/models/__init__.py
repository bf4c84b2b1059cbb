"""
Import all models here so that:
1. Alembic can auto-detect them when generating migrations
2. Relationships between models resolve correctly

Order matters: import parent tables before child tables.
"""

from fleet_rental.models.user import User
from fleet_rental.models.manufacturer import Manufacturer
from fleet_rental.models.manufacturer_model import ManufacturerModel
from fleet_rental.models.car_model import CarModel
from fleet_rental.models.fleet_car import FleetCar
from fleet_rental.models.rental import Rental
from fleet_rental.models.audit_log import AuditLog

__all__ = [
    "User",
    "Manufacturer",
    "ManufacturerModel",
    "CarModel",
    "FleetCar",
    "Rental",
    "AuditLog",
]
