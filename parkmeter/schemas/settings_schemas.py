# schemas/settings_schemas.py

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Dict, List, Optional

from parkmeter.core.settings import SettingsSnapshot
from parkmeter.core.vehicle import VehicleCategory


class TierIn(BaseModel):
    threshold_hours: int = Field(ge=1)
    amount: Decimal = Field(ge=0)


class TierOut(BaseModel):
    threshold_hours: int
    amount: Decimal


class SettingsUpdate(BaseModel):
    grace_period_minutes: Optional[int] = Field(default=None, ge=0)
    tariff_table: Optional[Dict[VehicleCategory, List[TierIn]]] = None
    expected_version: Optional[int] = None

    def tariff_dict(self):
        if self.tariff_table is None:
            return None
        return {
            category.value: [{"threshold_hours": t.threshold_hours, "amount": str(t.amount)} for t in tiers]
            for category, tiers in self.tariff_table.items()
        }


class SettingsOut(BaseModel):
    version: int
    grace_period_minutes: int
    tariff_table: Dict[str, List[TierOut]]
    baseline_hourly_rate: Optional[Decimal] = None

    @classmethod
    def from_snapshot(cls, snapshot: SettingsSnapshot) -> "SettingsOut":
        return cls(
            version=snapshot.version,
            grace_period_minutes=snapshot.grace_period_minutes,
            tariff_table={
                category.value: [TierOut(threshold_hours=t.threshold_hours, amount=t.amount) for t in tiers]
                for category, tiers in snapshot.tariff_table.tiers
            },
            baseline_hourly_rate=snapshot.baseline_hourly_rate,
        )


class CategoryOut(BaseModel):
    value: VehicleCategory
    label: str
