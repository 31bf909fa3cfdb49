# model/pass_model.py

from sqlalchemy import Column, String, DateTime, Enum, UniqueConstraint
from parkmeter.database import Base
from parkmeter.core.vehicle import VehicleCategory
from parkmeter.model.session_model import _enum_values
import datetime


class MembershipPass(Base):
    __tablename__ = "membership_passes"
    __table_args__ = (
        UniqueConstraint("tenant_id", "vehicle_id", name="uq_membership_passes_vehicle"),
    )

    id          = Column(String(16), primary_key=True)
    tenant_id   = Column(String(64), index=True, nullable=False)
    vehicle_id  = Column(String(16), nullable=False)
    category    = Column(Enum(VehicleCategory, values_callable=_enum_values, native_enum=False, length=32), nullable=False)
    holder_name = Column(String(255), nullable=False)
    expiry_date = Column(DateTime(timezone=True), nullable=False)
    created_at  = Column(DateTime(timezone=True), default=lambda: datetime.datetime.now(datetime.timezone.utc))
