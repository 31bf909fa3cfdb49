# crud/pass_crud.py

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from parkmeter.core.clock import as_utc
from parkmeter.core.membership import first_expiry, next_expiry
from parkmeter.core.vehicle import VehicleCategory, normalize_vehicle_id
from parkmeter.database import reading
from parkmeter.errors import DuplicatePass, PassNotFound, StorageUnavailable
from parkmeter.model.pass_model import MembershipPass
from parkmeter.utils.ids import PASS_PREFIX, generate_id

logger = logging.getLogger(__name__)


def get_pass(db: Session, tenant_id: str, pass_id: str) -> Optional[MembershipPass]:
    with reading(db, "look up pass"):
        return (
            db.query(MembershipPass)
            .filter(MembershipPass.tenant_id == tenant_id, MembershipPass.id == pass_id.strip().upper())
            .first()
        )


def find_pass(db: Session, tenant_id: str, vehicle_id: str) -> Optional[MembershipPass]:
    # rows written before the unique constraint existed may repeat a plate; the
    # longest-running pass is the one that counts
    plate = normalize_vehicle_id(vehicle_id)
    with reading(db, "look up pass"):
        return (
            db.query(MembershipPass)
            .filter(MembershipPass.tenant_id == tenant_id, MembershipPass.vehicle_id == plate)
            .order_by(MembershipPass.expiry_date.desc())
            .first()
        )


def list_passes(db: Session, tenant_id: str, skip: int = 0, limit: int = 100) -> List[MembershipPass]:
    with reading(db, "list passes"):
        return (
            db.query(MembershipPass)
            .filter(MembershipPass.tenant_id == tenant_id)
            .order_by(MembershipPass.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )


def create_pass(
    db: Session,
    tenant_id: str,
    vehicle_id: str,
    category: VehicleCategory,
    holder_name: str,
    now: datetime,
) -> MembershipPass:
    plate = normalize_vehicle_id(vehicle_id)
    if find_pass(db, tenant_id, plate):
        raise DuplicatePass(f"Vehicle {plate} already has a membership pass")

    membership = MembershipPass(
        id=generate_id(PASS_PREFIX),
        tenant_id=tenant_id,
        vehicle_id=plate,
        category=VehicleCategory(category),
        holder_name=holder_name.strip(),
        expiry_date=first_expiry(now),
        created_at=as_utc(now),
    )
    try:
        db.add(membership)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicatePass(f"Vehicle {plate} already has a membership pass")
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to create pass for %s", plate)
        raise StorageUnavailable(f"Could not create pass: {e}")

    with reading(db, "reload pass"):
        db.refresh(membership)
    logger.info("Pass %s created for %s, valid until %s", membership.id, plate, membership.expiry_date)
    return membership


def renew_pass(db: Session, tenant_id: str, pass_id: str, now: datetime) -> MembershipPass:
    membership = get_pass(db, tenant_id, pass_id)
    if not membership:
        raise PassNotFound(f"Pass {pass_id} not found")

    previous = membership.expiry_date
    new_expiry = next_expiry(previous, now)
    try:
        # only moves forward from the expiry we read; a concurrent renewal makes this a no-op
        updated = (
            db.query(MembershipPass)
            .filter(
                MembershipPass.id == membership.id,
                MembershipPass.tenant_id == tenant_id,
                MembershipPass.expiry_date == previous,
            )
            .update({MembershipPass.expiry_date: new_expiry}, synchronize_session=False)
        )
        if updated != 1:
            db.rollback()
            raise StorageUnavailable(f"Pass {membership.id} was renewed concurrently, retry")
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to renew pass %s", membership.id)
        raise StorageUnavailable(f"Could not renew pass: {e}")

    with reading(db, "reload pass"):
        db.refresh(membership)
    logger.info("Pass %s renewed until %s", membership.id, new_expiry.isoformat())
    return membership


def delete_pass(db: Session, tenant_id: str, pass_id: str) -> None:
    membership = get_pass(db, tenant_id, pass_id)
    if not membership:
        raise PassNotFound(f"Pass {pass_id} not found")
    try:
        db.delete(membership)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageUnavailable(f"Could not delete pass: {e}")
    logger.info("Pass %s deleted", membership.id)
