from datetime import date

from sqlalchemy.orm import Session

from fleet_rental.models.rental import Rental
from fleet_rental.services.entity_graph import EntityGraphStore, EntityKind
from fleet_rental.utils.exceptions import NotFoundException, InvalidDateRangeException


def validate_range(start: date, end: date) -> None:
    if start >= end:
        raise InvalidDateRangeException()


class AvailabilityService:
    """
    Read-only conflict detection. Only active rentals (no actual return date)
    block a car; a returned car is free whatever dates its history records.
    """

    def find_conflicts(self, db: Session, license_plate: str, start: date, end: date) -> list[Rental]:
        validate_range(start, end)
        store = EntityGraphStore(db)
        if not store.exists(EntityKind.FLEET_CAR, license_plate):
            raise NotFoundException("Fleet car")
        return store.overlapping_rentals(license_plate, start, end)

    def is_available(self, db: Session, license_plate: str, start: date, end: date) -> bool:
        return not self.find_conflicts(db, license_plate, start, end)

    def list_pending_returns(self, db: Session) -> list[Rental]:
        """Active rentals, soonest requested return first."""
        return db.query(Rental)\
                 .filter(Rental.actualReturnDate.is_(None))\
                 .order_by(Rental.returnDate.asc(), Rental.id.asc())\
                 .all()

    def list_overdue(self, db: Session, as_of: date | None = None) -> list[Rental]:
        as_of = as_of or date.today()
        return db.query(Rental)\
                 .filter(Rental.actualReturnDate.is_(None), Rental.returnDate < as_of)\
                 .order_by(Rental.returnDate.asc(), Rental.id.asc())\
                 .all()


availability_service = AvailabilityService()
