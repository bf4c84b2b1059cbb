from pydantic import BaseModel, field_validator
from typing import Optional
from decimal import Decimal


def _clean_name(v: str, what: str) -> str:
    if not v or not v.strip(): raise ValueError(f"{what} cannot be empty")
    v = v.strip()
    if len(v) > 100: raise ValueError(f"{what} cannot exceed 100 characters")
    return v


def _clean_plate(v: str) -> str:
    if not v or not v.strip(): raise ValueError("License plate cannot be empty")
    v = v.strip().upper()
    if len(v) > 20: raise ValueError("License plate cannot exceed 20 characters")
    return v


def _check_year(v: int) -> int:
    if not (1900 <= v <= 3000): raise ValueError("Production year must be between 1900 and 3000")
    return v


def _check_price(v: Decimal) -> Decimal:
    if v < 0: raise ValueError("Price cannot be negative")
    return v


# ─── Manufacturers ────────────────────────────────────────────────────────────
class ManufacturerCreateRequest(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return _clean_name(v, "Manufacturer name")


class ManufacturerUpdateRequest(ManufacturerCreateRequest):
    pass


# ─── Manufacturer Models ──────────────────────────────────────────────────────
class ManufacturerModelCreateRequest(BaseModel):
    manufacturerId: int
    name:           str

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return _clean_name(v, "Model name")


class ManufacturerModelUpdateRequest(BaseModel):
    manufacturerId: Optional[int] = None
    name:           Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return _clean_name(v, "Model name") if v is not None else v


# ─── Car Models ───────────────────────────────────────────────────────────────
class CarModelCreateRequest(BaseModel):
    manufacturerModelId: int
    productionYear:      int
    isManualGear:        bool = False
    dailyPrice:          Decimal
    dayDelayPrice:       Decimal

    @field_validator("productionYear")
    @classmethod
    def check_year(cls, v):
        return _check_year(v)

    @field_validator("dailyPrice", "dayDelayPrice")
    @classmethod
    def check_price(cls, v):
        return _check_price(v)


class CarModelUpdateRequest(BaseModel):
    productionYear: Optional[int]     = None
    isManualGear:   Optional[bool]    = None
    dailyPrice:     Optional[Decimal] = None
    dayDelayPrice:  Optional[Decimal] = None

    @field_validator("productionYear")
    @classmethod
    def check_year(cls, v):
        return _check_year(v) if v is not None else v

    @field_validator("dailyPrice", "dayDelayPrice")
    @classmethod
    def check_price(cls, v):
        return _check_price(v) if v is not None else v


# ─── Fleet Cars ───────────────────────────────────────────────────────────────
class FleetCarCreateRequest(BaseModel):
    licensePlate: str
    carModelId:   int
    imagePath:    Optional[str] = None

    @field_validator("licensePlate")
    @classmethod
    def check_plate(cls, v):
        return _clean_plate(v)


class FleetCarUpdateRequest(BaseModel):
    carModelId: Optional[int] = None
    imagePath:  Optional[str] = None


class CarSearchParams(BaseModel):
    manufacturerId:      Optional[int]  = None
    manufacturerModelId: Optional[int]  = None
    productionYear:      Optional[int]  = None
    isManualGear:        Optional[bool] = None
    freeText:            Optional[str]  = None
