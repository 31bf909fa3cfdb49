# schemas/pass_schemas.py

from pydantic import BaseModel, ConfigDict, constr, field_validator
from datetime import datetime

from parkmeter.core.clock import as_utc
from parkmeter.core.vehicle import VehicleCategory, normalize_vehicle_id


class PassCreate(BaseModel):
    vehicle_id: str
    category: VehicleCategory
    holder_name: constr(strip_whitespace=True, min_length=1, max_length=255)

    @field_validator("vehicle_id")
    @classmethod
    def canonical_plate(cls, v: str) -> str:
        return normalize_vehicle_id(v)


class PassOut(BaseModel):
    id: str
    vehicle_id: str
    category: VehicleCategory
    holder_name: str
    expiry_date: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("expiry_date", "created_at")
    @classmethod
    def utc(cls, v: datetime) -> datetime:
        return as_utc(v)
