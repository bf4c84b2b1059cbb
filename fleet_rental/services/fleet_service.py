from datetime import date

from sqlalchemy import and_, exists, func, or_
from sqlalchemy.orm import Session

from fleet_rental.models.manufacturer import Manufacturer
from fleet_rental.models.manufacturer_model import ManufacturerModel
from fleet_rental.models.car_model import CarModel
from fleet_rental.models.fleet_car import FleetCar
from fleet_rental.models.rental import Rental
from fleet_rental.schemas.fleet import (
    ManufacturerCreateRequest, ManufacturerUpdateRequest,
    ManufacturerModelCreateRequest, ManufacturerModelUpdateRequest,
    CarModelCreateRequest, CarModelUpdateRequest,
    FleetCarCreateRequest, FleetCarUpdateRequest, CarSearchParams,
)
from fleet_rental.services.availability_service import validate_range
from fleet_rental.utils.audit import log_action
from fleet_rental.utils.exceptions import NotFoundException, DuplicateEntryException, InvalidDateRangeException


def _serialize_manufacturer(m: Manufacturer) -> dict:
    return {"id": m.id, "name": m.name}


def _serialize_model(mm: ManufacturerModel) -> dict:
    return {
        "id":           mm.id,
        "name":         mm.name,
        "manufacturer": _serialize_manufacturer(mm.manufacturer),
    }


def _serialize_car_model(c: CarModel) -> dict:
    return {
        "id":                c.id,
        "manufacturerModel": _serialize_model(c.manufacturer_model),
        "productionYear":    c.productionYear,
        "isManualGear":      c.isManualGear,
        "gearType":          c.gear_type,
        "dailyPrice":        str(c.dailyPrice),
        "dayDelayPrice":     str(c.dayDelayPrice),
    }


def _serialize_fleet_car(f: FleetCar) -> dict:
    return {
        "licensePlate": f.licensePlate,
        "carModel":     _serialize_car_model(f.car_model),
        "imagePath":    f.imagePath,
    }


class FleetService:
    """Administrative catalog writes with natural-key duplicate detection."""

    # ─── Manufacturers ────────────────────────────────────────────────────────
    def list_manufacturers(self, db: Session) -> list[dict]:
        return [_serialize_manufacturer(m) for m in db.query(Manufacturer).order_by(Manufacturer.name).all()]

    def get_manufacturer(self, db: Session, manufacturer_id: int) -> dict:
        m = db.query(Manufacturer).filter(Manufacturer.id == manufacturer_id).first()
        if not m:
            raise NotFoundException("Manufacturer")
        return _serialize_manufacturer(m)

    def manufacturer_exists(self, db: Session, name: str) -> bool:
        return db.query(Manufacturer).filter(func.lower(Manufacturer.name) == name.lower()).first() is not None

    def create_manufacturer(self, db: Session, data: ManufacturerCreateRequest, actor_id: int | None = None) -> dict:
        if self.manufacturer_exists(db, data.name):
            raise DuplicateEntryException("Manufacturer already exists", field="name")
        m = Manufacturer(name=data.name)
        db.add(m)
        db.flush()
        log_action(db, actor_id, "CREATE", "Manufacturer", m.id, f"Created manufacturer {m.name}")
        db.commit()
        db.refresh(m)
        return _serialize_manufacturer(m)

    def update_manufacturer(self, db: Session, manufacturer_id: int, data: ManufacturerUpdateRequest,
                            actor_id: int | None = None) -> dict:
        m = db.query(Manufacturer).filter(Manufacturer.id == manufacturer_id).first()
        if not m:
            raise NotFoundException("Manufacturer")
        if data.name.lower() != m.name.lower() and self.manufacturer_exists(db, data.name):
            raise DuplicateEntryException("Manufacturer already exists", field="name")
        m.name = data.name
        log_action(db, actor_id, "UPDATE", "Manufacturer", m.id, f"Renamed manufacturer to {m.name}")
        db.commit()
        db.refresh(m)
        return _serialize_manufacturer(m)

    # ─── Manufacturer Models ──────────────────────────────────────────────────
    def list_models(self, db: Session, manufacturer_id: int | None = None) -> list[dict]:
        q = db.query(ManufacturerModel).join(ManufacturerModel.manufacturer)
        if manufacturer_id:
            q = q.filter(ManufacturerModel.manufacturerId == manufacturer_id)
        items = q.order_by(Manufacturer.name, ManufacturerModel.name).all()
        return [_serialize_model(mm) for mm in items]

    def get_model(self, db: Session, model_id: int) -> dict:
        mm = db.query(ManufacturerModel).filter(ManufacturerModel.id == model_id).first()
        if not mm:
            raise NotFoundException("Manufacturer model")
        return _serialize_model(mm)

    def _model_exists(self, db: Session, manufacturer_id: int, name: str, exclude_id: int | None = None) -> bool:
        q = db.query(ManufacturerModel).filter(
            ManufacturerModel.manufacturerId == manufacturer_id,
            func.lower(ManufacturerModel.name) == name.lower(),
        )
        if exclude_id:
            q = q.filter(ManufacturerModel.id != exclude_id)
        return q.first() is not None

    def create_model(self, db: Session, data: ManufacturerModelCreateRequest, actor_id: int | None = None) -> dict:
        if not db.query(Manufacturer).filter(Manufacturer.id == data.manufacturerId).first():
            raise NotFoundException("Manufacturer")
        if self._model_exists(db, data.manufacturerId, data.name):
            raise DuplicateEntryException("Model already exists for this manufacturer", field="name")
        mm = ManufacturerModel(manufacturerId=data.manufacturerId, name=data.name)
        db.add(mm)
        db.flush()
        log_action(db, actor_id, "CREATE", "ManufacturerModel", mm.id, f"Created model {mm.name}")
        db.commit()
        db.refresh(mm)
        return _serialize_model(mm)

    def update_model(self, db: Session, model_id: int, data: ManufacturerModelUpdateRequest,
                     actor_id: int | None = None) -> dict:
        mm = db.query(ManufacturerModel).filter(ManufacturerModel.id == model_id).first()
        if not mm:
            raise NotFoundException("Manufacturer model")
        manufacturer_id = data.manufacturerId or mm.manufacturerId
        name = data.name or mm.name
        if data.manufacturerId and not db.query(Manufacturer).filter(Manufacturer.id == data.manufacturerId).first():
            raise NotFoundException("Manufacturer")
        if self._model_exists(db, manufacturer_id, name, exclude_id=model_id):
            raise DuplicateEntryException("Model already exists for this manufacturer", field="name")
        mm.manufacturerId = manufacturer_id
        mm.name = name
        log_action(db, actor_id, "UPDATE", "ManufacturerModel", mm.id, f"Updated model {mm.name}")
        db.commit()
        db.refresh(mm)
        return _serialize_model(mm)

    # ─── Car Models ───────────────────────────────────────────────────────────
    def list_car_models(self, db: Session, manufacturer_id: int | None = None) -> list[dict]:
        q = db.query(CarModel).join(CarModel.manufacturer_model).join(ManufacturerModel.manufacturer)
        if manufacturer_id:
            q = q.filter(ManufacturerModel.manufacturerId == manufacturer_id)
        items = q.order_by(Manufacturer.name, ManufacturerModel.name, CarModel.productionYear).all()
        return [_serialize_car_model(c) for c in items]

    def get_car_model(self, db: Session, car_model_id: int) -> dict:
        c = db.query(CarModel).filter(CarModel.id == car_model_id).first()
        if not c:
            raise NotFoundException("Car model")
        return _serialize_car_model(c)

    def _car_model_exists(self, db: Session, model_id: int, year: int, manual: bool,
                          exclude_id: int | None = None) -> bool:
        q = db.query(CarModel).filter(
            CarModel.manufacturerModelId == model_id,
            CarModel.productionYear == year,
            CarModel.isManualGear == manual,
        )
        if exclude_id:
            q = q.filter(CarModel.id != exclude_id)
        return q.first() is not None

    def create_car_model(self, db: Session, data: CarModelCreateRequest, actor_id: int | None = None) -> dict:
        if not db.query(ManufacturerModel).filter(ManufacturerModel.id == data.manufacturerModelId).first():
            raise NotFoundException("Manufacturer model")
        if self._car_model_exists(db, data.manufacturerModelId, data.productionYear, data.isManualGear):
            raise DuplicateEntryException("Car model with this year and gear already exists")
        c = CarModel(
            manufacturerModelId=data.manufacturerModelId,
            productionYear=data.productionYear,
            isManualGear=data.isManualGear,
            dailyPrice=data.dailyPrice,
            dayDelayPrice=data.dayDelayPrice,
        )
        db.add(c)
        db.flush()
        log_action(db, actor_id, "CREATE", "CarModel", c.id,
                   f"Created car model {c.productionYear} ({c.gear_type})")
        db.commit()
        db.refresh(c)
        return _serialize_car_model(c)

    def update_car_model(self, db: Session, car_model_id: int, data: CarModelUpdateRequest,
                         actor_id: int | None = None) -> dict:
        c = db.query(CarModel).filter(CarModel.id == car_model_id).first()
        if not c:
            raise NotFoundException("Car model")
        year   = data.productionYear if data.productionYear is not None else c.productionYear
        manual = data.isManualGear if data.isManualGear is not None else c.isManualGear
        if self._car_model_exists(db, c.manufacturerModelId, year, manual, exclude_id=car_model_id):
            raise DuplicateEntryException("Car model with this year and gear already exists")

        c.productionYear = year
        c.isManualGear   = manual
        if data.dailyPrice is not None:    c.dailyPrice    = data.dailyPrice
        if data.dayDelayPrice is not None: c.dayDelayPrice = data.dayDelayPrice

        log_action(db, actor_id, "UPDATE", "CarModel", c.id, f"Updated car model #{c.id}")
        db.commit()
        db.refresh(c)
        return _serialize_car_model(c)

    # ─── Fleet Cars ───────────────────────────────────────────────────────────
    def get_fleet_car(self, db: Session, license_plate: str) -> dict:
        f = db.query(FleetCar).filter(FleetCar.licensePlate == license_plate).first()
        if not f:
            raise NotFoundException("Fleet car")
        return _serialize_fleet_car(f)

    def fleet_car_exists(self, db: Session, license_plate: str) -> bool:
        return db.query(FleetCar).filter(FleetCar.licensePlate == license_plate).first() is not None

    def create_fleet_car(self, db: Session, data: FleetCarCreateRequest, actor_id: int | None = None) -> dict:
        if not db.query(CarModel).filter(CarModel.id == data.carModelId).first():
            raise NotFoundException("Car model")
        if self.fleet_car_exists(db, data.licensePlate):
            raise DuplicateEntryException("Car already exists in the fleet", field="licensePlate")
        f = FleetCar(licensePlate=data.licensePlate, carModelId=data.carModelId, imagePath=data.imagePath)
        db.add(f)
        db.flush()
        log_action(db, actor_id, "CREATE", "FleetCar", f.licensePlate, f"Added {f.licensePlate} to the fleet")
        db.commit()
        db.refresh(f)
        return _serialize_fleet_car(f)

    def update_fleet_car(self, db: Session, license_plate: str, data: FleetCarUpdateRequest,
                         actor_id: int | None = None) -> dict:
        f = db.query(FleetCar).filter(FleetCar.licensePlate == license_plate).first()
        if not f:
            raise NotFoundException("Fleet car")
        if data.carModelId and not db.query(CarModel).filter(CarModel.id == data.carModelId).first():
            raise NotFoundException("Car model")

        if data.carModelId:          f.carModelId = data.carModelId
        if data.imagePath is not None: f.imagePath = data.imagePath

        log_action(db, actor_id, "UPDATE", "FleetCar", f.licensePlate, f"Updated {f.licensePlate}")
        db.commit()
        db.refresh(f)
        return _serialize_fleet_car(f)

    def search_cars(
        self, db: Session, params: CarSearchParams,
        start: date | None = None, end: date | None = None,
    ) -> list[dict]:
        """
        Filter the fleet by catalog attributes and free text. With a date range,
        cars holding an overlapping active rental are left out; a range with only
        one end given is rejected.
        """
        q = db.query(FleetCar)\
              .join(FleetCar.car_model)\
              .join(CarModel.manufacturer_model)\
              .join(ManufacturerModel.manufacturer)

        if params.manufacturerId:         q = q.filter(ManufacturerModel.manufacturerId == params.manufacturerId)
        if params.manufacturerModelId:    q = q.filter(CarModel.manufacturerModelId == params.manufacturerModelId)
        if params.productionYear:         q = q.filter(CarModel.productionYear == params.productionYear)
        if params.isManualGear is not None: q = q.filter(CarModel.isManualGear == params.isManualGear)
        if params.freeText:
            kw = f"%{params.freeText.strip()}%"
            q = q.filter(or_(
                FleetCar.licensePlate.ilike(kw),
                Manufacturer.name.ilike(kw),
                ManufacturerModel.name.ilike(kw),
            ))
        if start or end:
            if not (start and end):
                raise InvalidDateRangeException()
            validate_range(start, end)
            q = q.filter(~exists().where(and_(
                Rental.licensePlate == FleetCar.licensePlate,
                Rental.actualReturnDate.is_(None),
                Rental.pickUpDate < end,
                Rental.returnDate > start,
            )))

        items = q.order_by(Manufacturer.name, ManufacturerModel.name, CarModel.productionYear,
                           FleetCar.licensePlate).all()
        return [_serialize_fleet_car(f) for f in items]


fleet_service = FleetService()
