# core/tariff.py
"""
Tariff table and fee computation.

A tier is a flat amount charged once the billed time reaches its threshold.
The calculator picks the largest threshold that billed hours have reached;
below every threshold it bills per started hour at the 1-hour tier's rate.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from parkmeter.core.clock import as_utc, minutes_between
from parkmeter.core.vehicle import VehicleCategory
from parkmeter.errors import InvalidInterval, InvalidTariff, TariffNotConfigured

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def _to_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidTariff(f"Tier amount is not a number: {value!r}")
    if not amount.is_finite() or amount < 0:
        raise InvalidTariff(f"Tier amount must be a non-negative number: {value!r}")
    return amount.quantize(CENTS)


@dataclass(frozen=True)
class Tier:
    threshold_hours: int
    amount: Decimal

    @classmethod
    def parse(cls, raw: Mapping) -> "Tier":
        try:
            hours = raw["threshold_hours"]
            amount = raw["amount"]
        except (KeyError, TypeError):
            raise InvalidTariff(f"Tier needs threshold_hours and amount: {raw!r}")
        if isinstance(hours, bool) or not isinstance(hours, int) or hours < 1:
            raise InvalidTariff(f"threshold_hours must be a positive integer: {hours!r}")
        return cls(threshold_hours=hours, amount=_to_amount(amount))

    def to_dict(self) -> Dict[str, object]:
        return {"threshold_hours": self.threshold_hours, "amount": str(self.amount)}


@dataclass(frozen=True)
class TariffTable:
    """Immutable category -> tiers mapping. Tiers keep their configured order."""
    tiers: Tuple[Tuple[VehicleCategory, Tuple[Tier, ...]], ...]

    @classmethod
    def from_dict(cls, raw: Mapping) -> "TariffTable":
        if not isinstance(raw, Mapping):
            raise InvalidTariff("Tariff table must map categories to tier lists")

        entries = []
        for key, tier_list in raw.items():
            try:
                category = VehicleCategory(key)
            except ValueError:
                raise InvalidTariff(f"Unknown vehicle category: {key!r}")
            if isinstance(tier_list, (str, bytes)) or not isinstance(tier_list, Iterable):
                raise InvalidTariff(f"Tiers for {category.value} must be a list")

            parsed = tuple(Tier.parse(t) for t in tier_list)
            thresholds = [t.threshold_hours for t in parsed]
            if len(set(thresholds)) != len(thresholds):
                raise InvalidTariff(f"Duplicate thresholds for {category.value}: {thresholds}")
            if parsed and 1 not in thresholds:
                logger.warning(
                    "Tariff for %s has no 1-hour tier; short stays bill at the baseline rate",
                    category.value,
                )
            entries.append((category, parsed))

        entries.sort(key=lambda e: e[0].value)
        return cls(tiers=tuple(entries))

    def tiers_for(self, category: VehicleCategory) -> Tuple[Tier, ...]:
        for cat, tiers in self.tiers:
            if cat == category:
                return tiers
        return ()

    def to_dict(self) -> Dict[str, List[Dict[str, object]]]:
        return {cat.value: [t.to_dict() for t in tiers] for cat, tiers in self.tiers}


@dataclass(frozen=True)
class FeeQuote:
    amount: Decimal
    billed_minutes: int

    @property
    def billed_hours(self) -> int:
        return math.ceil(self.billed_minutes / 60)


def compute_fee(
    entry_time: datetime,
    exit_time: datetime,
    category: VehicleCategory,
    is_exempt: bool,
    grace_period_minutes: int,
    tariff_table: TariffTable,
    baseline_hourly_rate: Optional[Decimal] = None,
) -> FeeQuote:
    if as_utc(exit_time) < as_utc(entry_time):
        raise InvalidInterval(f"Exit time {exit_time.isoformat()} is before entry time {entry_time.isoformat()}")

    billed_minutes = max(0, minutes_between(exit_time, entry_time))

    # exemption and grace never need a price, so they settle before the tariff lookup
    if is_exempt or billed_minutes <= grace_period_minutes:
        return FeeQuote(amount=ZERO, billed_minutes=billed_minutes)

    tiers = tariff_table.tiers_for(VehicleCategory(category))
    if not tiers:
        raise TariffNotConfigured(f"No tariff configured for {VehicleCategory(category).value}")

    billed_hours = math.ceil(billed_minutes / 60)
    for tier in sorted(tiers, key=lambda t: t.threshold_hours, reverse=True):
        if tier.threshold_hours <= billed_hours:
            return FeeQuote(amount=tier.amount, billed_minutes=billed_minutes)

    hourly = next((t.amount for t in tiers if t.threshold_hours == 1), None)
    if hourly is None:
        if baseline_hourly_rate is None:
            raise TariffNotConfigured(
                f"No 1-hour tier for {VehicleCategory(category).value} and no baseline hourly rate"
            )
        hourly = Decimal(baseline_hourly_rate)

    return FeeQuote(amount=(hourly * billed_hours).quantize(CENTS), billed_minutes=billed_minutes)
