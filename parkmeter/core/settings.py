# core/settings.py

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from parkmeter import config
from parkmeter.core.tariff import TariffTable
from parkmeter.errors import InvalidSettings


@dataclass(frozen=True)
class SettingsSnapshot:
    """
    One tenant's settings as of a single read. Computations receive a
    snapshot instead of reading settings themselves, so a concurrent update
    cannot change the tariff halfway through a settlement.
    """
    tenant_id: str
    version: int
    grace_period_minutes: int
    tariff_table: TariffTable
    baseline_hourly_rate: Optional[Decimal] = None

    def __post_init__(self):
        validate_grace_period(self.grace_period_minutes)


def validate_grace_period(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidSettings(f"Grace period must be a non-negative integer of minutes: {value!r}")
    return value


def default_snapshot(tenant_id: str) -> SettingsSnapshot:
    return SettingsSnapshot(
        tenant_id=tenant_id,
        version=0,
        grace_period_minutes=config.DEFAULT_GRACE_MINUTES,
        tariff_table=TariffTable.from_dict(config.DEFAULT_TARIFF_TABLE),
        baseline_hourly_rate=config.BASELINE_HOURLY_RATE,
    )
