from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from fleet_rental.database import get_db
from fleet_rental.schemas.common import ErrorResponse, success_response, list_response
from fleet_rental.schemas.rental import RentalCreateRequest, ReturnRequest
from fleet_rental.services.reservation_service import reservation_service, serialize_rental

router = APIRouter()

BOOKING_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.post("/rentals", status_code=status.HTTP_201_CREATED, responses=BOOKING_RESPONSES,
             summary="Book a fleet car for [pickUpDate, returnDate)")
def book_vehicle(body: RentalCreateRequest, db: Session = Depends(get_db)):
    rental_id = reservation_service.book_vehicle(
        db, body.licensePlate, body.pickUpDate, body.returnDate, body.userId,
    )
    return success_response("Rental created successfully", reservation_service.get_rental(db, rental_id))


@router.get("/rentals/pending-returns", summary="Active rentals, soonest requested return first")
def list_pending_returns(db: Session = Depends(get_db)):
    return list_response("Pending returns retrieved", reservation_service.list_pending_returns(db))


@router.get("/rentals/overdue", summary="Active rentals past their requested return date")
def list_overdue(asOf: Optional[date] = Query(None), db: Session = Depends(get_db)):
    return list_response("Overdue rentals retrieved", reservation_service.list_overdue(db, asOf))


@router.get("/rentals/{rental_id}", responses={404: {"model": ErrorResponse}}, summary="Rental detail with charges")
def get_rental(rental_id: int, db: Session = Depends(get_db)):
    return success_response("Rental retrieved", reservation_service.get_rental(db, rental_id))


@router.patch("/rentals/{rental_id}/return", responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
              summary="Mark the rental's car as returned")
def return_vehicle(rental_id: int, body: ReturnRequest = ReturnRequest(), db: Session = Depends(get_db)):
    rental = reservation_service.mark_returned(db, rental_id, body.returnedOn)
    return success_response("Vehicle returned",
                            serialize_rental(rental, reservation_service.charges_for(db, rental)))


@router.get("/users/{user_id}/rentals", responses={404: {"model": ErrorResponse}},
            summary="Rental history for a user, newest first")
def list_user_rentals(user_id: int, db: Session = Depends(get_db)):
    return list_response("Rentals retrieved", reservation_service.list_rentals_for_user(db, user_id))
