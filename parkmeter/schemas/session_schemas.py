# schemas/session_schemas.py

from pydantic import BaseModel, ConfigDict, field_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional

from parkmeter.core.clock import as_utc
from parkmeter.core.vehicle import VehicleCategory, normalize_vehicle_id
from parkmeter.model.session_model import ExemptionReason, SessionStatus


class EntryIn(BaseModel):
    vehicle_id: str
    category: VehicleCategory
    is_exempt: bool = False
    proof: Optional[str] = None   # data URL / blob reference from the capture device

    @field_validator("vehicle_id")
    @classmethod
    def canonical_plate(cls, v: str) -> str:
        return normalize_vehicle_id(v)


class ExitIn(BaseModel):
    key: str   # session id or vehicle number

    @field_validator("key")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Session id or vehicle number is required")
        return v.strip()


class SessionOut(BaseModel):
    id: str
    vehicle_id: str
    category: VehicleCategory
    entry_time: datetime
    exit_time: Optional[datetime] = None
    amount: Optional[Decimal] = None
    billed_minutes: Optional[int] = None
    is_exempt: bool
    exemption_reason: ExemptionReason
    proof_ref: Optional[str] = None
    status: SessionStatus

    model_config = ConfigDict(from_attributes=True)

    @field_validator("entry_time", "exit_time")
    @classmethod
    def utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None


class QuoteOut(BaseModel):
    session_id: str
    vehicle_id: str
    amount: Decimal
    billed_minutes: int
    billed_hours: int


class SummaryOut(BaseModel):
    active: int
    completed: int
    exempt: int
    revenue: Decimal


class PurgeOut(BaseModel):
    deleted: int
