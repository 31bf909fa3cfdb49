# model/settings_model.py

from sqlalchemy import Column, Integer, String, DateTime, JSON
from parkmeter.database import Base
import datetime


class TenantSettings(Base):
    __tablename__ = "tenant_settings"

    tenant_id            = Column(String(64), primary_key=True)
    grace_period_minutes = Column(Integer, nullable=False)
    tariff_table         = Column(JSON, nullable=False)   # {category: [{threshold_hours, amount}]}, amounts as strings
    version              = Column(Integer, nullable=False, default=1)
    updated_at           = Column(
        DateTime(timezone=True),
        default=lambda: datetime.datetime.now(datetime.timezone.utc),
        onupdate=lambda: datetime.datetime.now(datetime.timezone.utc),
    )
