# errors.py
"""
Exception types raised by the parking engine.

Validation errors are ValueErrors so callers that only know about bad input
can keep catching ValueError. Policy rejections are expected business
outcomes; the policy service turns them into typed results instead of
letting them escape.
"""


class ParkingError(Exception):
    code = "parking_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


# ─── Validation ──────────────────────────────────────────────────────────────────

class InvalidInput(ParkingError, ValueError):
    code = "invalid_input"


class InvalidVehicleId(InvalidInput):
    code = "invalid_vehicle_id"


class InvalidInterval(InvalidInput):
    code = "invalid_interval"


class InvalidTariff(InvalidInput):
    code = "invalid_tariff"


class InvalidSettings(InvalidInput):
    code = "invalid_settings"


# ─── Policy rejections ───────────────────────────────────────────────────────────

class PolicyRejection(ParkingError):
    code = "policy_rejection"


class DuplicateActiveSession(PolicyRejection):
    code = "duplicate_active_session"


class MembershipExpired(PolicyRejection):
    code = "membership_expired"


class NoActiveSession(PolicyRejection):
    code = "no_active_session"


class AlreadyCompleted(PolicyRejection):
    code = "already_completed"


class PassNotFound(PolicyRejection):
    code = "pass_not_found"


class DuplicatePass(PolicyRejection):
    code = "duplicate_pass"


# ─── Configuration / storage ─────────────────────────────────────────────────────

class TariffNotConfigured(ParkingError):
    code = "tariff_not_configured"


class StorageUnavailable(ParkingError):
    code = "storage_unavailable"
