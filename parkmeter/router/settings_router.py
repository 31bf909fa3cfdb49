# router/settings_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from parkmeter.core.vehicle import VehicleCategory
from parkmeter.crud.settings_crud import load_settings, update_settings
from parkmeter.database import get_db
from parkmeter.schemas.settings_schemas import CategoryOut, SettingsOut, SettingsUpdate
from parkmeter.utils.identity import get_tenant_id

router = APIRouter(tags=["settings"])


@router.get("/settings/", response_model=SettingsOut)
def read_settings(db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return SettingsOut.from_snapshot(load_settings(db, tenant_id))


@router.put("/settings/", response_model=SettingsOut)
def write_settings(payload: SettingsUpdate, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    snapshot = update_settings(
        db,
        tenant_id,
        grace_period_minutes=payload.grace_period_minutes,
        tariff_table=payload.tariff_dict(),
        expected_version=payload.expected_version,
    )
    return SettingsOut.from_snapshot(snapshot)


@router.get("/categories", response_model=List[CategoryOut])
def list_categories():
    return [CategoryOut(value=c, label=c.label) for c in VehicleCategory]
