from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from fleet_rental.database import get_db
from fleet_rental.schemas.common import ErrorResponse, success_response, list_response
from fleet_rental.schemas.fleet import (
    ManufacturerCreateRequest, ManufacturerUpdateRequest,
    ManufacturerModelCreateRequest, ManufacturerModelUpdateRequest,
    CarModelCreateRequest, CarModelUpdateRequest,
)
from fleet_rental.services.cascade_service import cascade_service, DeletionMode
from fleet_rental.services.entity_graph import EntityKind
from fleet_rental.services.fleet_service import fleet_service

router = APIRouter()

DELETE_RESPONSES = {404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}


# ─── Manufacturers ────────────────────────────────────────────────────────────
@router.get("/manufacturers", summary="List manufacturers")
def list_manufacturers(db: Session = Depends(get_db)):
    return list_response("Manufacturers retrieved", fleet_service.list_manufacturers(db))


@router.get("/manufacturers/{manufacturer_id}", summary="Get manufacturer")
def get_manufacturer(manufacturer_id: int, db: Session = Depends(get_db)):
    return success_response("Manufacturer retrieved", fleet_service.get_manufacturer(db, manufacturer_id))


@router.post("/manufacturers", status_code=status.HTTP_201_CREATED, summary="Create manufacturer")
def create_manufacturer(body: ManufacturerCreateRequest, db: Session = Depends(get_db)):
    return success_response("Manufacturer created successfully", fleet_service.create_manufacturer(db, body))


@router.put("/manufacturers/{manufacturer_id}", summary="Update manufacturer")
def update_manufacturer(manufacturer_id: int, body: ManufacturerUpdateRequest, db: Session = Depends(get_db)):
    return success_response("Manufacturer updated",
                            fleet_service.update_manufacturer(db, manufacturer_id, body))


@router.delete("/manufacturers/{manufacturer_id}", responses=DELETE_RESPONSES,
               summary="Delete manufacturer (STRICT refuses when models exist)")
def delete_manufacturer(
    manufacturer_id: int,
    mode: DeletionMode = Query(DeletionMode.STRICT),
    db:   Session      = Depends(get_db),
):
    result = cascade_service.delete_entity(db, EntityKind.MANUFACTURER, manufacturer_id, mode)
    return success_response("Manufacturer deleted", result.to_dict())


# ─── Manufacturer Models ──────────────────────────────────────────────────────
@router.get("/manufacturer-models", summary="List manufacturer models")
def list_models(manufacturerId: Optional[int] = Query(None), db: Session = Depends(get_db)):
    return list_response("Models retrieved", fleet_service.list_models(db, manufacturerId))


@router.get("/manufacturer-models/{model_id}", summary="Get manufacturer model")
def get_model(model_id: int, db: Session = Depends(get_db)):
    return success_response("Model retrieved", fleet_service.get_model(db, model_id))


@router.post("/manufacturer-models", status_code=status.HTTP_201_CREATED, summary="Create manufacturer model")
def create_model(body: ManufacturerModelCreateRequest, db: Session = Depends(get_db)):
    return success_response("Model created successfully", fleet_service.create_model(db, body))


@router.put("/manufacturer-models/{model_id}", summary="Update manufacturer model")
def update_model(model_id: int, body: ManufacturerModelUpdateRequest, db: Session = Depends(get_db)):
    return success_response("Model updated", fleet_service.update_model(db, model_id, body))


@router.delete("/manufacturer-models/{model_id}", responses=DELETE_RESPONSES,
               summary="Delete manufacturer model (STRICT refuses when car models exist)")
def delete_model(
    model_id: int,
    mode: DeletionMode = Query(DeletionMode.STRICT),
    db:   Session      = Depends(get_db),
):
    result = cascade_service.delete_entity(db, EntityKind.MANUFACTURER_MODEL, model_id, mode)
    return success_response("Model deleted", result.to_dict())


# ─── Car Models ───────────────────────────────────────────────────────────────
@router.get("/car-models", summary="List car models")
def list_car_models(manufacturerId: Optional[int] = Query(None), db: Session = Depends(get_db)):
    return list_response("Car models retrieved", fleet_service.list_car_models(db, manufacturerId))


@router.get("/car-models/{car_model_id}", summary="Get car model")
def get_car_model(car_model_id: int, db: Session = Depends(get_db)):
    return success_response("Car model retrieved", fleet_service.get_car_model(db, car_model_id))


@router.post("/car-models", status_code=status.HTTP_201_CREATED, summary="Create car model")
def create_car_model(body: CarModelCreateRequest, db: Session = Depends(get_db)):
    return success_response("Car model created successfully", fleet_service.create_car_model(db, body))


@router.put("/car-models/{car_model_id}", summary="Update car model")
def update_car_model(car_model_id: int, body: CarModelUpdateRequest, db: Session = Depends(get_db)):
    return success_response("Car model updated", fleet_service.update_car_model(db, car_model_id, body))


@router.delete("/car-models/{car_model_id}", responses=DELETE_RESPONSES,
               summary="Delete car model (STRICT refuses when fleet cars exist)")
def delete_car_model(
    car_model_id: int,
    mode: DeletionMode = Query(DeletionMode.STRICT),
    db:   Session      = Depends(get_db),
):
    result = cascade_service.delete_entity(db, EntityKind.CAR_MODEL, car_model_id, mode)
    return success_response("Car model deleted", result.to_dict())
