from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from fleet_rental.database import get_db
from fleet_rental.schemas.common import ErrorResponse, success_response, list_response
from fleet_rental.schemas.fleet import FleetCarCreateRequest, FleetCarUpdateRequest, CarSearchParams
from fleet_rental.services.availability_service import availability_service
from fleet_rental.services.cascade_service import cascade_service, DeletionMode
from fleet_rental.services.entity_graph import EntityKind
from fleet_rental.services.fleet_service import fleet_service
from fleet_rental.services.reservation_service import serialize_rental

router = APIRouter(prefix="/fleet-cars")


def _plate(license_plate: str) -> str:
    return license_plate.strip().upper()


@router.get("/search", summary="Search the fleet, optionally only cars free for a date range")
def search_cars(
    manufacturerId:      Optional[int]  = Query(None),
    manufacturerModelId: Optional[int]  = Query(None),
    productionYear:      Optional[int]  = Query(None),
    isManualGear:        Optional[bool] = Query(None),
    freeText:            Optional[str]  = Query(None),
    startDate:           Optional[date] = Query(None),
    endDate:             Optional[date] = Query(None),
    db:                  Session        = Depends(get_db),
):
    params = CarSearchParams(
        manufacturerId=manufacturerId,
        manufacturerModelId=manufacturerModelId,
        productionYear=productionYear,
        isManualGear=isManualGear,
        freeText=freeText,
    )
    return list_response("Cars retrieved", fleet_service.search_cars(db, params, startDate, endDate))


@router.get("/{license_plate}", summary="Get fleet car")
def get_fleet_car(license_plate: str, db: Session = Depends(get_db)):
    return success_response("Fleet car retrieved", fleet_service.get_fleet_car(db, _plate(license_plate)))


@router.get("/{license_plate}/availability", responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
            summary="Check whether the car is free for [startDate, endDate)")
def check_availability(
    license_plate: str,
    startDate: date    = Query(...),
    endDate:   date    = Query(...),
    db:        Session = Depends(get_db),
):
    conflicts = availability_service.find_conflicts(db, _plate(license_plate), startDate, endDate)
    return success_response(
        "Available" if not conflicts else "Unavailable",
        {
            "licensePlate": _plate(license_plate),
            "startDate":    startDate.isoformat(),
            "endDate":      endDate.isoformat(),
            "available":    not conflicts,
            "conflicts":    [serialize_rental(r) for r in conflicts],
        },
    )


@router.post("", status_code=status.HTTP_201_CREATED, summary="Add car to the fleet")
def create_fleet_car(body: FleetCarCreateRequest, db: Session = Depends(get_db)):
    return success_response("Fleet car created successfully", fleet_service.create_fleet_car(db, body))


@router.put("/{license_plate}", summary="Update fleet car")
def update_fleet_car(license_plate: str, body: FleetCarUpdateRequest, db: Session = Depends(get_db)):
    return success_response("Fleet car updated",
                            fleet_service.update_fleet_car(db, _plate(license_plate), body))


@router.delete("/{license_plate}", responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
               summary="Delete fleet car (STRICT refuses when rentals exist)")
def delete_fleet_car(
    license_plate: str,
    mode: DeletionMode = Query(DeletionMode.STRICT),
    db:   Session      = Depends(get_db),
):
    result = cascade_service.delete_entity(db, EntityKind.FLEET_CAR, _plate(license_plate), mode)
    return success_response("Fleet car deleted", result.to_dict())
