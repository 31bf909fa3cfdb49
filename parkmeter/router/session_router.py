# router/session_router.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional

from parkmeter.crud.session_crud import get_session, list_sessions, purge_sessions, summarize
from parkmeter.database import get_db
from parkmeter.errors import NoActiveSession
from parkmeter.model.session_model import SessionStatus
from parkmeter.router.dependencies import get_engine, rejection_http
from parkmeter.schemas.session_schemas import (
    EntryIn,
    ExitIn,
    PurgeOut,
    QuoteOut,
    SessionOut,
    SummaryOut,
)
from parkmeter.services.policy_service import PolicyEngine
from parkmeter.utils.identity import get_tenant_id

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("/entry", response_model=SessionOut, status_code=201)
def vehicle_entry(payload: EntryIn, engine: PolicyEngine = Depends(get_engine)):
    admission = engine.admit(
        payload.vehicle_id,
        payload.category,
        is_exempt_requested=payload.is_exempt,
        proof=payload.proof,
    )
    if not admission.admitted:
        raise rejection_http(admission.rejection)
    return admission.session


@router.post("/exit", response_model=SessionOut)
def vehicle_exit(payload: ExitIn, engine: PolicyEngine = Depends(get_engine)):
    settlement = engine.settle(payload.key)
    if not settlement.settled:
        raise rejection_http(settlement.rejection)
    return settlement.session  # the receipt


@router.get("/summary", response_model=SummaryOut)
def session_summary(db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return summarize(db, tenant_id)


@router.get("/{key}/quote", response_model=QuoteOut)
def quote_session(key: str, engine: PolicyEngine = Depends(get_engine)):
    try:
        session, fee = engine.quote(key)
    except NoActiveSession as e:
        raise rejection_http(e)
    return QuoteOut(
        session_id=session.id,
        vehicle_id=session.vehicle_id,
        amount=fee.amount,
        billed_minutes=fee.billed_minutes,
        billed_hours=fee.billed_hours,
    )


@router.get("/", response_model=List[SessionOut])
def read_sessions(
    status: Optional[SessionStatus] = None,
    q: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return list_sessions(db, tenant_id, status=status, q=q, skip=skip, limit=limit)


@router.get("/{session_id}", response_model=SessionOut)
def read_session(session_id: str, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    session = get_session(db, tenant_id, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail={"code": "session_not_found", "message": "Session not found"})
    return session


@router.delete("/", response_model=PurgeOut)
def purge(
    include_active: bool = False,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return PurgeOut(deleted=purge_sessions(db, tenant_id, include_active=include_active))
