from abc import ABC, abstractmethod
from typing import List, Optional

from app.security.entity.banned_ip import BannedIp


class IBannedIpRepository(ABC):
    @abstractmethod
    async def get_by_ip(self, ip_address: str) -> Optional[BannedIp]:
        pass

    @abstractmethod
    async def get_by_id(self, ban_id: int) -> Optional[BannedIp]:
        pass

    @abstractmethod
    async def list_all(self) -> List[BannedIp]:
        pass

    @abstractmethod
    async def create(self, ban: BannedIp) -> BannedIp:
        pass

    @abstractmethod
    async def delete(self, ban_id: int) -> bool:
        pass
