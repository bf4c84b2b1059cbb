import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from fleet_rental.models.car_model import CarModel
from fleet_rental.models.fleet_car import FleetCar
from fleet_rental.models.rental import Rental
from fleet_rental.models.user import User
from fleet_rental.services.availability_service import (
    AvailabilityService, availability_service, validate_range,
)
from fleet_rental.services.entity_graph import EntityGraphStore
from fleet_rental.utils.audit import log_action
from fleet_rental.utils.cancellation import CancellationToken, check_cancelled
from fleet_rental.utils.exceptions import (
    NotFoundException, AlreadyBookedException, AlreadyReturnedException,
    VehicleUnavailableException,
)
from fleet_rental.utils.notifications import LifecycleEvent, EventSubscriber, publish_lifecycle_event

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


def calculate_charges(rental: Rental, car_model: CarModel) -> dict:
    """
    Base price for the requested days plus the late fee for every day the car
    came back after its requested return date. An active rental has no late
    fee yet.
    """
    rental_days = (rental.returnDate - rental.pickUpDate).days
    late_days = 0
    if rental.actualReturnDate is not None:
        late_days = max(0, (rental.actualReturnDate - rental.returnDate).days)
    base     = (Decimal(car_model.dailyPrice) * rental_days).quantize(_CENTS)
    late_fee = (Decimal(car_model.dayDelayPrice) * late_days).quantize(_CENTS)
    return {
        "rentalDays": rental_days,
        "lateDays":   late_days,
        "baseAmount": base,
        "lateFee":    late_fee,
        "total":      base + late_fee,
    }


def serialize_rental(r: Rental, charges: dict | None = None) -> dict:
    data = {
        "id":               r.id,
        "licensePlate":     r.licensePlate,
        "userId":           r.userId,
        "pickUpDate":       r.pickUpDate.isoformat(),
        "returnDate":       r.returnDate.isoformat(),
        "actualReturnDate": r.actualReturnDate.isoformat() if r.actualReturnDate else None,
        "status":           "ACTIVE" if r.is_active else "CLOSED",
    }
    if charges is not None:
        data["charges"] = {k: str(v) if isinstance(v, Decimal) else v for k, v in charges.items()}
    return data


class ReservationService:

    def __init__(self, availability: AvailabilityService = availability_service):
        self.availability = availability

    # ─── Committer ────────────────────────────────────────────────────────────
    def create_reservation(
        self,
        db: Session,
        license_plate: str,
        start: date,
        end: date,
        user_id: int,
        cancel: CancellationToken | None = None,
        subscriber: EventSubscriber | None = None,
    ) -> int:
        """
        Insert a rental if the car is free, in one transaction.

        The car row is locked first, so the overlap check and the insert see
        every reservation committed before us and block any that come after.
        """
        validate_range(start, end)
        store = EntityGraphStore(db)
        with store.transaction():
            if not store.lock_fleet_car(license_plate):
                raise NotFoundException("Fleet car")
            if db.get(User, user_id) is None:
                raise NotFoundException("User")
            if store.overlapping_rentals(license_plate, start, end):
                logger.warning(f"Booking {license_plate} {start}..{end} lost to an existing reservation")
                raise AlreadyBookedException()
            check_cancelled(cancel)

            rental = store.insert(Rental(
                licensePlate=license_plate,
                pickUpDate=start,
                returnDate=end,
                userId=user_id,
            ))
            log_action(db, user_id, "CREATE", "Rental", rental.id,
                       f"Booked {license_plate} from {start} to {end}")
            db.flush()
            check_cancelled(cancel)
            rental_id = rental.id

        logger.info(f"Rental #{rental_id} booked: {license_plate} {start}..{end} for user {user_id}")
        publish_lifecycle_event(LifecycleEvent("BOOKED", "Rental", str(rental_id)), subscriber)
        return rental_id

    def mark_returned(
        self,
        db: Session,
        rental_id: int,
        returned_on: date | None = None,
        cancel: CancellationToken | None = None,
        subscriber: EventSubscriber | None = None,
    ) -> Rental:
        """Close an active rental. Closing twice is rejected, not ignored."""
        store = EntityGraphStore(db)
        with store.transaction():
            rental = db.query(Rental).filter(Rental.id == rental_id).first()
            if not rental:
                raise NotFoundException("Rental")
            if rental.actualReturnDate is not None:
                raise AlreadyReturnedException()

            # A car handed back before its pick-up date closes on the pick-up date
            returned_on = max(returned_on or date.today(), rental.pickUpDate)
            result = db.execute(
                update(Rental)
                .where(Rental.id == rental_id, Rental.actualReturnDate.is_(None))
                .values(actualReturnDate=returned_on)
            )
            if result.rowcount == 0:
                raise AlreadyReturnedException()

            log_action(db, None, "RETURN", "Rental", rental_id,
                       f"Rental #{rental_id} returned on {returned_on}")
            db.flush()
            check_cancelled(cancel)

        db.refresh(rental)
        logger.info(f"Rental #{rental_id} closed on {rental.actualReturnDate}")
        publish_lifecycle_event(LifecycleEvent("RETURNED", "Rental", str(rental_id)), subscriber)
        return rental

    # ─── Booking flow ─────────────────────────────────────────────────────────
    def book_vehicle(
        self,
        db: Session,
        license_plate: str,
        start: date,
        end: date,
        user_id: int,
        cancel: CancellationToken | None = None,
        subscriber: EventSubscriber | None = None,
    ) -> int:
        if not self.availability.is_available(db, license_plate, start, end):
            raise VehicleUnavailableException()
        return self.create_reservation(db, license_plate, start, end, user_id, cancel, subscriber)

    # ─── Queries ──────────────────────────────────────────────────────────────
    def get_rental(self, db: Session, rental_id: int) -> dict:
        r = db.query(Rental).filter(Rental.id == rental_id).first()
        if not r:
            raise NotFoundException("Rental")
        return serialize_rental(r, self.charges_for(db, r))

    def charges_for(self, db: Session, rental: Rental) -> dict:
        car_model = db.query(CarModel)\
                      .join(FleetCar, FleetCar.carModelId == CarModel.id)\
                      .filter(FleetCar.licensePlate == rental.licensePlate)\
                      .one()
        return calculate_charges(rental, car_model)

    def list_rentals_for_user(self, db: Session, user_id: int) -> list[dict]:
        if db.get(User, user_id) is None:
            raise NotFoundException("User")
        rentals = db.query(Rental).filter(Rental.userId == user_id)\
                    .order_by(Rental.id.desc()).all()
        return [serialize_rental(r) for r in rentals]

    def list_pending_returns(self, db: Session) -> list[dict]:
        return [serialize_rental(r) for r in self.availability.list_pending_returns(db)]

    def list_overdue(self, db: Session, as_of: date | None = None) -> list[dict]:
        return [serialize_rental(r) for r in self.availability.list_overdue(db, as_of)]


reservation_service = ReservationService()
