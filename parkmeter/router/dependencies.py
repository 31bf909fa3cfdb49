# router/dependencies.py

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from parkmeter.core.clock import utcnow
from parkmeter.database import get_db
from parkmeter.errors import (
    AlreadyCompleted,
    DuplicateActiveSession,
    DuplicatePass,
    MembershipExpired,
    NoActiveSession,
    PassNotFound,
    PolicyRejection,
)
from parkmeter.services.policy_service import PolicyEngine
from parkmeter.utils.identity import get_tenant_id

REJECTION_STATUS = {
    DuplicateActiveSession: 409,
    AlreadyCompleted: 409,
    DuplicatePass: 409,
    MembershipExpired: 403,
    NoActiveSession: 404,
    PassNotFound: 404,
}


def get_clock():
    # overridden in tests to pin "now"
    return utcnow


def get_engine(
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    clock=Depends(get_clock),
) -> PolicyEngine:
    return PolicyEngine(db, tenant_id, clock=clock)


def rejection_http(rejection: PolicyRejection) -> HTTPException:
    return HTTPException(
        status_code=REJECTION_STATUS.get(type(rejection), 409),
        detail={"code": rejection.code, "message": rejection.message},
    )
