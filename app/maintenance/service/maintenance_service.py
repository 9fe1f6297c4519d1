# app/maintenance/service/maintenance_service.py
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from app.audit.service.audit_service import AuditService
from app.core.client_info import ClientInfo
from app.maintenance.entity.maintenance import MaintenanceAllowedIp, MaintenanceSettings, as_utc
from app.maintenance.service.service import IMaintenanceRepository
from app.security.service.ip_ban_service import normalize_ip


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MaintenanceService:
    """
    Maintenance switch with an optional scheduled window and an allow-list of
    client addresses that keep full access while it is on.
    """

    def __init__(
        self,
        repository: IMaintenanceRepository,
        audit_service: AuditService,
        logger: logging.Logger,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.audit_service = audit_service
        self.logger = logger
        self.clock = clock

    async def blocking_message(self, ip_address: Optional[str]) -> Optional[str]:
        """Message to answer with when a request from ``ip_address`` must be turned away, else None."""
        settings = await self.repository.get_settings()
        if settings is None or not settings.is_active(self.clock()):
            return None
        if ip_address:
            try:
                if await self.repository.is_ip_allowed(normalize_ip(ip_address)):
                    return None
            except ValueError:
                # Non-IP client hosts cannot be on the allow-list
                pass
        return settings.display_message

    async def get_overview(self) -> Tuple[Optional[MaintenanceSettings], List[MaintenanceAllowedIp]]:
        return await self.repository.get_settings(), await self.repository.list_allowed_ips()

    def is_scheduled_active(self, settings: MaintenanceSettings) -> bool:
        return settings.is_scheduled_active(self.clock())

    async def update(self, changes: Dict[str, Any], admin_id: str, client: ClientInfo) -> MaintenanceSettings:
        """Apply only the fields present in ``changes``."""
        changes = dict(changes)
        for field in ("scheduled_start", "scheduled_end"):
            if field in changes:
                changes[field] = as_utc(changes[field])

        current = await self.repository.get_settings() or MaintenanceSettings()
        start = changes.get("scheduled_start", as_utc(current.scheduled_start))
        end = changes.get("scheduled_end", as_utc(current.scheduled_end))
        if start is not None and end is not None and end <= start:
            raise HTTPException(status_code=422, detail="scheduled_end must be after scheduled_start")

        settings = await self.repository.update_settings(changes)

        if "enabled" in changes:
            ip_address, user_agent = client
            await self.audit_service.log(
                "maintenance_mode_enabled" if changes["enabled"] else "maintenance_mode_disabled",
                admin_id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"enabled": changes["enabled"], "message": settings.message},
            )
            self.logger.warning(f"Maintenance mode {'enabled' if changes['enabled'] else 'disabled'} by {admin_id}")
        return settings

    async def add_allowed_ip(self, ip_address: str, description: Optional[str], admin_id: str,
                             client: ClientInfo) -> MaintenanceAllowedIp:
        try:
            ip_address = normalize_ip(ip_address)
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Invalid IP address: {ip_address}")

        if await self.repository.get_allowed_ip_by_address(ip_address):
            raise HTTPException(status_code=409, detail="IP address is already allowed")
        try:
            allowed = await self.repository.add_allowed_ip(
                MaintenanceAllowedIp(ip_address=ip_address, description=description, added_by=admin_id)
            )
        except IntegrityError:
            raise HTTPException(status_code=409, detail="IP address is already allowed")

        ip, user_agent = client
        await self.audit_service.log(
            "maintenance_mode_add_allowed_ip",
            admin_id,
            ip_address=ip,
            user_agent=user_agent,
            details={"allowed_ip": ip_address, "description": description},
        )
        return allowed

    async def remove_allowed_ip(self, allowed_id: int, admin_id: str, client: ClientInfo) -> MaintenanceAllowedIp:
        allowed = await self.repository.get_allowed_ip(allowed_id)
        if allowed is None:
            raise HTTPException(status_code=404, detail="Allowed IP not found")
        await self.repository.delete_allowed_ip(allowed_id)

        ip, user_agent = client
        await self.audit_service.log(
            "maintenance_mode_remove_allowed_ip",
            admin_id,
            ip_address=ip,
            user_agent=user_agent,
            details={"removed_ip": allowed.ip_address},
        )
        return allowed
