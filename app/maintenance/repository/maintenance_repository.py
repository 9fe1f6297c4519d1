# app/maintenance/repository/maintenance_repository.py
from typing import Any, Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.future import select

from app.maintenance.entity.maintenance import (
    DEFAULT_MAINTENANCE_MESSAGE,
    MaintenanceAllowedIp,
    MaintenanceSettings,
)
from app.maintenance.repository.sql_schema.maintenance import MaintenanceAllowedIpModel, MaintenanceModeModel
from app.maintenance.service.service import IMaintenanceRepository
from pkg.db_util.sql_conn import SqlConnection
from pkg.log.logger import get_logger

logger = get_logger(__name__)


def _settings_entity(row: MaintenanceModeModel) -> MaintenanceSettings:
    return MaintenanceSettings(
        id=row.id,
        enabled=row.enabled,
        message=row.message,
        scheduled_start=row.scheduled_start,
        scheduled_end=row.scheduled_end,
    )


def _allowed_entity(row: MaintenanceAllowedIpModel) -> MaintenanceAllowedIp:
    return MaintenanceAllowedIp(
        id=row.id,
        ip_address=row.ip_address,
        description=row.description,
        added_by=row.added_by,
        added_at=row.added_at,
    )


class MaintenanceRepository(IMaintenanceRepository):

    def __init__(self, sql: SqlConnection):
        self.sql = sql
        self.logger = logger

    async def _first_row(self, session) -> Optional[MaintenanceModeModel]:
        result = await session.execute(select(MaintenanceModeModel).order_by(MaintenanceModeModel.id).limit(1))
        return result.scalar_one_or_none()

    async def get_settings(self) -> Optional[MaintenanceSettings]:
        async with self.sql.get_session() as session:
            row = await self._first_row(session)
            return _settings_entity(row) if row else None

    async def update_settings(self, changes: Dict[str, Any]) -> MaintenanceSettings:
        async with self.sql.get_session() as session:
            row = await self._first_row(session)
            if row is None:
                row = MaintenanceModeModel(enabled=False, message=DEFAULT_MAINTENANCE_MESSAGE)
                session.add(row)
            for field, value in changes.items():
                setattr(row, field, value)
            await session.flush()
            await session.refresh(row)
            self.logger.info(f"Maintenance settings updated: {sorted(changes)}")
            return _settings_entity(row)

    async def is_ip_allowed(self, ip_address: str) -> bool:
        return await self.get_allowed_ip_by_address(ip_address) is not None

    async def list_allowed_ips(self) -> List[MaintenanceAllowedIp]:
        async with self.sql.get_session() as session:
            result = await session.execute(
                select(MaintenanceAllowedIpModel).order_by(
                    MaintenanceAllowedIpModel.added_at.desc(), MaintenanceAllowedIpModel.id.desc()
                )
            )
            return [_allowed_entity(r) for r in result.scalars().all()]

    async def get_allowed_ip(self, allowed_id: int) -> Optional[MaintenanceAllowedIp]:
        async with self.sql.get_session() as session:
            row = await session.get(MaintenanceAllowedIpModel, allowed_id)
            return _allowed_entity(row) if row else None

    async def get_allowed_ip_by_address(self, ip_address: str) -> Optional[MaintenanceAllowedIp]:
        async with self.sql.get_session() as session:
            result = await session.execute(
                select(MaintenanceAllowedIpModel).where(MaintenanceAllowedIpModel.ip_address == ip_address)
            )
            row = result.scalar_one_or_none()
            return _allowed_entity(row) if row else None

    async def add_allowed_ip(self, allowed: MaintenanceAllowedIp) -> MaintenanceAllowedIp:
        async with self.sql.get_session() as session:
            row = MaintenanceAllowedIpModel(
                ip_address=allowed.ip_address,
                description=allowed.description,
                added_by=allowed.added_by,
            )
            session.add(row)
            await session.flush()
            await session.refresh(row)
            self.logger.info(f"Maintenance allowed IP added: {row.ip_address} (id={row.id})")
            return _allowed_entity(row)

    async def delete_allowed_ip(self, allowed_id: int) -> bool:
        async with self.sql.get_session() as session:
            result = await session.execute(
                delete(MaintenanceAllowedIpModel).where(MaintenanceAllowedIpModel.id == allowed_id)
            )
            return (result.rowcount or 0) > 0
