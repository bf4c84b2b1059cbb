from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import date


class RentalCreateRequest(BaseModel):
    licensePlate: str
    userId:       int
    pickUpDate:   date
    returnDate:   date   # date range order is checked by the engine (INVALID_DATE_RANGE)

    @field_validator("licensePlate")
    @classmethod
    def check_plate(cls, v):
        if not v.strip(): raise ValueError("License plate cannot be empty")
        return v.strip().upper()


class ReturnRequest(BaseModel):
    returnedOn: Optional[date] = None
