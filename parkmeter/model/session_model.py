# model/session_model.py

from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime, Text, Enum, UniqueConstraint, Index
from parkmeter.database import Base
from parkmeter.core.vehicle import VehicleCategory
import enum


class SessionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class ExemptionReason(str, enum.Enum):
    NONE = "none"
    OPERATOR = "operator"
    MEMBERSHIP = "membership"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class ParkingSession(Base):
    __tablename__ = "parking_sessions"
    __table_args__ = (
        # active_key holds the plate only while the session is active, so this
        # allows any number of completed sessions but one active one per plate
        UniqueConstraint("tenant_id", "active_key", name="uq_parking_sessions_active_vehicle"),
        Index("ix_parking_sessions_tenant_vehicle", "tenant_id", "vehicle_id"),
    )

    id               = Column(String(16), primary_key=True)
    tenant_id        = Column(String(64), index=True, nullable=False)
    vehicle_id       = Column(String(16), nullable=False)
    category         = Column(Enum(VehicleCategory, values_callable=_enum_values, native_enum=False, length=32), nullable=False)
    entry_time       = Column(DateTime(timezone=True), nullable=False)
    exit_time        = Column(DateTime(timezone=True), nullable=True)
    amount           = Column(Numeric(10, 2), nullable=True)
    billed_minutes   = Column(Integer, nullable=True)
    is_exempt        = Column(Boolean, nullable=False, default=False)
    exemption_reason = Column(Enum(ExemptionReason, values_callable=_enum_values, native_enum=False, length=16), nullable=False, default=ExemptionReason.NONE)
    proof_ref        = Column(Text, nullable=True)   # opaque, e.g. a data URL from the capture device
    status           = Column(Enum(SessionStatus, values_callable=_enum_values, native_enum=False, length=16), nullable=False, default=SessionStatus.ACTIVE)
    active_key       = Column(String(16), nullable=True)
