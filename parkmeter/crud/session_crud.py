# crud/session_crud.py
"""
Session store: the authoritative set of parking sessions per tenant.

At most one session per tenant and plate is active at a time. Inside one
process a per-tenant lock serializes check-then-write; across processes the
unique (tenant_id, active_key) constraint and the conditional close UPDATE
give the same guarantee.
"""

import logging
import re
import threading
import weakref
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import String, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from parkmeter.core.clock import as_utc
from parkmeter.core.vehicle import VehicleCategory, normalize_vehicle_id
from parkmeter.database import reading
from parkmeter.errors import (
    AlreadyCompleted,
    DuplicateActiveSession,
    InvalidVehicleId,
    NoActiveSession,
    StorageUnavailable,
)
from parkmeter.model.session_model import ExemptionReason, ParkingSession, SessionStatus
from parkmeter.utils.ids import SESSION_PREFIX, generate_id

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

_locks_guard = threading.Lock()
# entries disappear once no caller holds the tenant's lock
_tenant_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()


@contextmanager
def tenant_lock(tenant_id: str):
    with _locks_guard:
        lock = _tenant_locks.get(tenant_id)
        if lock is None:
            lock = _tenant_locks[tenant_id] = threading.Lock()
    with lock:
        yield


def _plate_or_none(key: str) -> Optional[str]:
    try:
        return normalize_vehicle_id(key)
    except InvalidVehicleId:
        return None


def get_session(db: Session, tenant_id: str, session_id: str) -> Optional[ParkingSession]:
    with reading(db, "look up session"):
        return (
            db.query(ParkingSession)
            .filter(ParkingSession.tenant_id == tenant_id, ParkingSession.id == session_id.strip().upper())
            .first()
        )


def _active_by_vehicle(db: Session, tenant_id: str, key: str) -> Optional[ParkingSession]:
    plate = _plate_or_none(key)
    if plate is None:
        return None
    with reading(db, "look up active session"):
        return (
            db.query(ParkingSession)
            .filter(
                ParkingSession.tenant_id == tenant_id,
                ParkingSession.vehicle_id == plate,
                ParkingSession.status == SessionStatus.ACTIVE,
            )
            .first()
        )


def find_active(db: Session, tenant_id: str, key: str) -> Optional[ParkingSession]:
    """Active session by session id, else by plate. No side effects."""
    by_id = get_session(db, tenant_id, key)
    if by_id is not None and by_id.status == SessionStatus.ACTIVE:
        return by_id
    return _active_by_vehicle(db, tenant_id, key)


def resolve_session(db: Session, tenant_id: str, key: str) -> Optional[ParkingSession]:
    """
    Like find_active, but an id match is returned whatever its status, so a
    caller can tell an already-completed session apart from a missing one.
    """
    by_id = get_session(db, tenant_id, key)
    if by_id is not None:
        return by_id
    return _active_by_vehicle(db, tenant_id, key)


def open_session(
    db: Session,
    tenant_id: str,
    vehicle_id: str,
    category: VehicleCategory,
    exemption_reason: ExemptionReason,
    proof: Optional[str],
    now: datetime,
) -> ParkingSession:
    plate = normalize_vehicle_id(vehicle_id)
    reason = ExemptionReason(exemption_reason)

    with tenant_lock(tenant_id):
        if _active_by_vehicle(db, tenant_id, plate):
            raise DuplicateActiveSession(f"Vehicle {plate} is already parked")

        session = ParkingSession(
            id=generate_id(SESSION_PREFIX),
            tenant_id=tenant_id,
            vehicle_id=plate,
            category=VehicleCategory(category),
            entry_time=as_utc(now),
            is_exempt=reason != ExemptionReason.NONE,
            exemption_reason=reason,
            proof_ref=proof if reason == ExemptionReason.OPERATOR else None,
            status=SessionStatus.ACTIVE,
            active_key=plate,
        )
        try:
            db.add(session)
            db.commit()
        except IntegrityError:
            # another process got the active key first
            db.rollback()
            raise DuplicateActiveSession(f"Vehicle {plate} is already parked")
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Failed to open session for %s", plate)
            raise StorageUnavailable(f"Could not record entry: {e}")

    with reading(db, "reload session"):
        db.refresh(session)
    return session


def close_session(
    db: Session,
    tenant_id: str,
    key: str,
    exit_time: datetime,
    amount: Decimal,
    billed_minutes: int,
) -> ParkingSession:
    with tenant_lock(tenant_id):
        session = resolve_session(db, tenant_id, key)
        if session is None:
            raise NoActiveSession(f"No active parking session for {key}")
        if session.status == SessionStatus.COMPLETED:
            raise AlreadyCompleted(f"Session {session.id} is already completed")

        try:
            updated = (
                db.query(ParkingSession)
                .filter(
                    ParkingSession.id == session.id,
                    ParkingSession.tenant_id == tenant_id,
                    ParkingSession.status == SessionStatus.ACTIVE,
                )
                .update(
                    {
                        ParkingSession.exit_time: as_utc(exit_time),
                        ParkingSession.amount: amount,
                        ParkingSession.billed_minutes: billed_minutes,
                        ParkingSession.status: SessionStatus.COMPLETED,
                        ParkingSession.active_key: None,
                    },
                    synchronize_session=False,
                )
            )
            if updated != 1:
                db.rollback()
                raise AlreadyCompleted(f"Session {session.id} is already completed")
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Failed to close session %s", session.id)
            raise StorageUnavailable(f"Could not record exit: {e}")

    with reading(db, "reload session"):
        db.refresh(session)
    return session


def list_sessions(
    db: Session,
    tenant_id: str,
    status: Optional[SessionStatus] = None,
    q: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[ParkingSession]:
    """
    Sessions newest first. `q` is a partial plate or session id; spacing and
    case are ignored, so "av40" finds "TN 18 AV 4064".
    """
    query = db.query(ParkingSession).filter(ParkingSession.tenant_id == tenant_id)
    if status is not None:
        query = query.filter(ParkingSession.status == SessionStatus(status))
    needle = _WHITESPACE.sub("", q or "").upper()
    if needle:
        query = query.filter(
            or_(
                func.replace(ParkingSession.vehicle_id, " ", "", type_=String).contains(needle, autoescape=True),
                ParkingSession.id.contains(needle, autoescape=True),
            )
        )
    with reading(db, "list sessions"):
        return query.order_by(ParkingSession.entry_time.desc()).offset(skip).limit(limit).all()


def purge_sessions(db: Session, tenant_id: str, include_active: bool = False) -> int:
    with tenant_lock(tenant_id):
        query = db.query(ParkingSession).filter(ParkingSession.tenant_id == tenant_id)
        if not include_active:
            query = query.filter(ParkingSession.status == SessionStatus.COMPLETED)
        try:
            deleted = query.delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageUnavailable(f"Could not purge sessions: {e}")
    logger.info("Purged %d sessions for tenant %s", deleted, tenant_id)
    return deleted


def summarize(db: Session, tenant_id: str) -> Dict[str, object]:
    with reading(db, "summarize sessions"):
        counts = dict(
            db.query(ParkingSession.status, func.count(ParkingSession.id))
            .filter(ParkingSession.tenant_id == tenant_id)
            .group_by(ParkingSession.status)
            .all()
        )
        exempt = (
            db.query(func.count(ParkingSession.id))
            .filter(ParkingSession.tenant_id == tenant_id, ParkingSession.is_exempt.is_(True))
            .scalar()
        )
        revenue = (
            db.query(func.coalesce(func.sum(ParkingSession.amount), 0))
            .filter(
                ParkingSession.tenant_id == tenant_id,
                ParkingSession.status == SessionStatus.COMPLETED,
            )
            .scalar()
        )
    return {
        "active": counts.get(SessionStatus.ACTIVE, 0),
        "completed": counts.get(SessionStatus.COMPLETED, 0),
        "exempt": exempt or 0,
        "revenue": Decimal(str(revenue or 0)).quantize(Decimal("0.01")),
    }
