# crud/settings_crud.py

import logging
from typing import Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parkmeter import config
from parkmeter.core.settings import SettingsSnapshot, default_snapshot, validate_grace_period
from parkmeter.core.tariff import TariffTable
from parkmeter.database import reading
from parkmeter.errors import StorageUnavailable
from parkmeter.model.settings_model import TenantSettings

logger = logging.getLogger(__name__)


def _snapshot(row: TenantSettings) -> SettingsSnapshot:
    return SettingsSnapshot(
        tenant_id=row.tenant_id,
        version=row.version,
        grace_period_minutes=row.grace_period_minutes,
        tariff_table=TariffTable.from_dict(row.tariff_table),
        baseline_hourly_rate=config.BASELINE_HOURLY_RATE,
    )


def load_settings(db: Session, tenant_id: str) -> SettingsSnapshot:
    with reading(db, "load settings"):
        row: Optional[TenantSettings] = db.get(TenantSettings, tenant_id)

    if row is None:
        return default_snapshot(tenant_id)
    return _snapshot(row)


def update_settings(
    db: Session,
    tenant_id: str,
    grace_period_minutes: Optional[int] = None,
    tariff_table: Optional[Mapping] = None,
    expected_version: Optional[int] = None,
) -> SettingsSnapshot:
    """
    The only write path for settings. Values left as None keep their current
    value; with expected_version the write only lands if nobody else wrote
    in between.
    """
    current = load_settings(db, tenant_id)
    if expected_version is not None and expected_version != current.version:
        raise StorageUnavailable(
            f"Settings changed concurrently (expected version {expected_version}, found {current.version})"
        )

    grace = current.grace_period_minutes
    if grace_period_minutes is not None:
        grace = validate_grace_period(grace_period_minutes)

    table = current.tariff_table
    if tariff_table is not None:
        table = TariffTable.from_dict(tariff_table)

    try:
        if current.version == 0:
            db.add(TenantSettings(
                tenant_id=tenant_id,
                grace_period_minutes=grace,
                tariff_table=table.to_dict(),
                version=1,
            ))
        else:
            updated = (
                db.query(TenantSettings)
                .filter(TenantSettings.tenant_id == tenant_id, TenantSettings.version == current.version)
                .update(
                    {
                        TenantSettings.grace_period_minutes: grace,
                        TenantSettings.tariff_table: table.to_dict(),
                        TenantSettings.version: current.version + 1,
                    },
                    synchronize_session=False,
                )
            )
            if updated != 1:
                db.rollback()
                raise StorageUnavailable("Settings changed concurrently, reload and retry")
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to write settings for tenant %s", tenant_id)
        raise StorageUnavailable(f"Could not save settings: {e}")

    db.expire_all()
    snapshot = load_settings(db, tenant_id)
    logger.info(
        "Settings for tenant %s now at version %d (grace %d min)",
        tenant_id, snapshot.version, snapshot.grace_period_minutes,
    )
    return snapshot
