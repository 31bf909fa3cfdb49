# core/vehicle.py

import enum
import re

from parkmeter.errors import InvalidVehicleId


class VehicleCategory(str, enum.Enum):
    TWO_WHEELER = "two-wheeler"
    FOUR_WHEELER = "four-wheeler"
    HEAVY_VEHICLE = "heavy-vehicle"
    PUBLIC_TRANSPORT = "public-transport"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ").title()


# plate groups, e.g. TN 18 AV 4064
GROUPS = (2, 2, 2, 4)
MAX_PLATE_LENGTH = sum(GROUPS)

_WHITESPACE = re.compile(r"\s+")
_ALNUM = re.compile(r"^[A-Z0-9]+$")


def normalize_vehicle_id(raw: str) -> str:
    """
    Canonical form of a plate: whitespace stripped, uppercased, and regrouped
    as 2-2-2-4 characters separated by single spaces.
    """
    if raw is None:
        raise InvalidVehicleId("Vehicle number is required")

    clean = _WHITESPACE.sub("", str(raw)).upper()
    if not clean:
        raise InvalidVehicleId("Vehicle number cannot be empty")
    if not _ALNUM.match(clean):
        raise InvalidVehicleId(f"Vehicle number may only contain letters and digits: {raw!r}")
    if len(clean) > MAX_PLATE_LENGTH:
        raise InvalidVehicleId(
            f"Vehicle number has {len(clean)} characters, at most {MAX_PLATE_LENGTH} allowed"
        )

    parts = []
    start = 0
    for size in GROUPS:
        if start >= len(clean):
            break
        parts.append(clean[start:start + size])
        start += size
    return " ".join(parts)
