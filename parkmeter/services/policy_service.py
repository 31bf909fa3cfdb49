# services/policy_service.py

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Tuple

from sqlalchemy.orm import Session

from parkmeter.core.clock import utcnow
from parkmeter.core.membership import is_valid_at
from parkmeter.core.settings import SettingsSnapshot
from parkmeter.core.tariff import FeeQuote, compute_fee
from parkmeter.core.vehicle import VehicleCategory, normalize_vehicle_id
from parkmeter.crud import pass_crud, session_crud, settings_crud
from parkmeter.errors import (
    AlreadyCompleted,
    DuplicateActiveSession,
    MembershipExpired,
    NoActiveSession,
    PolicyRejection,
)
from parkmeter.model.session_model import ExemptionReason, ParkingSession, SessionStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Admission:
    session: Optional[ParkingSession] = None
    rejection: Optional[PolicyRejection] = None

    @property
    def admitted(self) -> bool:
        return self.rejection is None


@dataclass(frozen=True)
class Settlement:
    session: Optional[ParkingSession] = None
    rejection: Optional[PolicyRejection] = None

    @property
    def settled(self) -> bool:
        return self.rejection is None


class PolicyEngine:
    def __init__(self, db: Session, tenant_id: str, clock: Callable[[], datetime] = utcnow):
        """Entry and exit decisions for one tenant, backed by an open DB session."""
        self.db = db
        self.tenant_id = tenant_id
        self.clock = clock

    def settings(self) -> SettingsSnapshot:
        return settings_crud.load_settings(self.db, self.tenant_id)

    def admit(
        self,
        vehicle_id: str,
        category: VehicleCategory,
        is_exempt_requested: bool = False,
        proof: Optional[str] = None,
    ) -> Admission:
        plate = normalize_vehicle_id(vehicle_id)
        category = VehicleCategory(category)
        now = self.clock()

        if session_crud.find_active(self.db, self.tenant_id, plate):
            return self._reject_entry(DuplicateActiveSession(f"Vehicle {plate} is already parked"))

        membership = pass_crud.find_pass(self.db, self.tenant_id, plate)
        if membership is not None:
            if not is_valid_at(membership.expiry_date, now):
                return self._reject_entry(MembershipExpired(
                    f"Membership {membership.id} for {plate} expired; recharge the pass before entry"
                ))
            # a valid pass makes the stay free whatever the operator toggled
            reason = ExemptionReason.MEMBERSHIP
        elif is_exempt_requested:
            reason = ExemptionReason.OPERATOR
        else:
            reason = ExemptionReason.NONE

        try:
            session = session_crud.open_session(
                self.db, self.tenant_id, plate, category, reason, proof, now
            )
        except PolicyRejection as rejection:
            # lost the race to a concurrent entry for the same plate
            return self._reject_entry(rejection)

        logger.info(
            "Admitted %s as %s (session %s, exemption %s)",
            plate, category.value, session.id, reason.value,
        )
        return Admission(session=session)

    def quote(self, key: str, snapshot: Optional[SettingsSnapshot] = None) -> Tuple[ParkingSession, FeeQuote]:
        """Active session and the fee it would be charged if it left now."""
        session = session_crud.find_active(self.db, self.tenant_id, key)
        if session is None:
            raise NoActiveSession(f"No active parking session for {key}")
        return session, self._price(session, self.clock(), snapshot or self.settings())

    def settle(self, key: str) -> Settlement:
        session = session_crud.resolve_session(self.db, self.tenant_id, key)
        if session is None:
            return self._reject_exit(NoActiveSession(f"No active parking session for {key}"))
        if session.status == SessionStatus.COMPLETED:
            return self._reject_exit(AlreadyCompleted(f"Session {session.id} is already completed"))

        snapshot = self.settings()
        exit_time = self.clock()
        fee = self._price(session, exit_time, snapshot)

        try:
            closed = session_crud.close_session(
                self.db, self.tenant_id, session.id, exit_time, fee.amount, fee.billed_minutes
            )
        except PolicyRejection as rejection:
            return self._reject_exit(rejection)

        logger.info(
            "Settled %s for %s: %s over %d min (settings v%d)",
            closed.id, closed.vehicle_id, fee.amount, fee.billed_minutes, snapshot.version,
        )
        return Settlement(session=closed)

    def _price(self, session: ParkingSession, exit_time: datetime, snapshot: SettingsSnapshot) -> FeeQuote:
        return compute_fee(
            entry_time=session.entry_time,
            exit_time=exit_time,
            category=session.category,
            is_exempt=session.is_exempt,
            grace_period_minutes=snapshot.grace_period_minutes,
            tariff_table=snapshot.tariff_table,
            baseline_hourly_rate=snapshot.baseline_hourly_rate,
        )

    def _reject_entry(self, rejection: PolicyRejection) -> Admission:
        logger.warning("Entry rejected (%s): %s", rejection.code, rejection.message)
        return Admission(rejection=rejection)

    def _reject_exit(self, rejection: PolicyRejection) -> Settlement:
        logger.warning("Exit rejected (%s): %s", rejection.code, rejection.message)
        return Settlement(rejection=rejection)
