# router/pass_router.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from parkmeter.crud.pass_crud import create_pass, delete_pass, get_pass, list_passes, renew_pass
from parkmeter.database import get_db
from parkmeter.errors import PolicyRejection
from parkmeter.router.dependencies import get_clock, rejection_http
from parkmeter.schemas.pass_schemas import PassCreate, PassOut
from parkmeter.utils.identity import get_tenant_id

router = APIRouter(prefix="/passes", tags=["passes"])


@router.post("/", response_model=PassOut, status_code=201)
def add_pass(
    payload: PassCreate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    clock=Depends(get_clock),
):
    try:
        return create_pass(db, tenant_id, payload.vehicle_id, payload.category, payload.holder_name, clock())
    except PolicyRejection as e:
        raise rejection_http(e)


@router.get("/", response_model=List[PassOut])
def read_passes(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return list_passes(db, tenant_id, skip, limit)


@router.get("/{pass_id}", response_model=PassOut)
def read_pass(pass_id: str, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    membership = get_pass(db, tenant_id, pass_id)
    if not membership:
        raise HTTPException(status_code=404, detail={"code": "pass_not_found", "message": "Pass not found"})
    return membership


@router.post("/{pass_id}/renew", response_model=PassOut)
def recharge_pass(
    pass_id: str,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    clock=Depends(get_clock),
):
    try:
        return renew_pass(db, tenant_id, pass_id, clock())
    except PolicyRejection as e:
        raise rejection_http(e)


@router.delete("/{pass_id}", status_code=204)
def remove_pass(pass_id: str, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    try:
        delete_pass(db, tenant_id, pass_id)
    except PolicyRejection as e:
        raise rejection_http(e)
