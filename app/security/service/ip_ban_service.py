import ipaddress
import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from app.security.entity.banned_ip import BannedIp
from app.security.service.service import IBannedIpRepository


def normalize_ip(value: str) -> str:
    """Canonical text form of an IPv4/IPv6 address; raises ValueError when invalid."""
    return str(ipaddress.ip_address(value.strip()))


class IpBanService:
    def __init__(self, repository: IBannedIpRepository, logger: logging.Logger):
        self.repository = repository
        self.logger = logger

    async def find_ban(self, ip_address: Optional[str]) -> Optional[BannedIp]:
        if not ip_address:
            return None
        try:
            ip_address = normalize_ip(ip_address)
        except ValueError:
            # Non-IP client hosts (e.g. test clients) can never be banned
            return None
        return await self.repository.get_by_ip(ip_address)

    async def list_bans(self) -> List[BannedIp]:
        return await self.repository.list_all()

    async def ban(self, ip_address: str, reason: Optional[str], banned_by: str) -> Tuple[BannedIp, bool]:
        """Ban an address. Returns (ban, created); an existing ban is returned unchanged."""
        ip_address = normalize_ip(ip_address)
        existing = await self.repository.get_by_ip(ip_address)
        if existing:
            return existing, False
        try:
            created = await self.repository.create(BannedIp(ip_address=ip_address, reason=reason, banned_by=banned_by))
        except IntegrityError:
            # A concurrent ban of the same address won the insert
            existing = await self.repository.get_by_ip(ip_address)
            if existing is None:
                raise
            self.logger.info(f"IP {ip_address} was banned concurrently; returning the existing ban")
            return existing, False
        return created, True

    async def unban(self, ban_id: int) -> Optional[BannedIp]:
        ban = await self.repository.get_by_id(ban_id)
        if ban is None:
            return None
        await self.repository.delete(ban_id)
        self.logger.info(f"Unbanned IP {ban.ip_address}")
        return ban
