from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from app.maintenance.entity.maintenance import MaintenanceAllowedIp, MaintenanceSettings


class IMaintenanceRepository(ABC):
    @abstractmethod
    async def get_settings(self) -> Optional[MaintenanceSettings]:
        pass

    @abstractmethod
    async def update_settings(self, changes: Dict[str, Any]) -> MaintenanceSettings:
        """Apply ``changes`` to the settings row, creating it with defaults first when missing."""
        pass

    @abstractmethod
    async def is_ip_allowed(self, ip_address: str) -> bool:
        pass

    @abstractmethod
    async def list_allowed_ips(self) -> List[MaintenanceAllowedIp]:
        pass

    @abstractmethod
    async def get_allowed_ip(self, allowed_id: int) -> Optional[MaintenanceAllowedIp]:
        pass

    @abstractmethod
    async def get_allowed_ip_by_address(self, ip_address: str) -> Optional[MaintenanceAllowedIp]:
        pass

    @abstractmethod
    async def add_allowed_ip(self, allowed: MaintenanceAllowedIp) -> MaintenanceAllowedIp:
        pass

    @abstractmethod
    async def delete_allowed_ip(self, allowed_id: int) -> bool:
        pass
