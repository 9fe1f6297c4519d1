from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.future import select

from app.security.entity.banned_ip import BannedIp
from app.security.repository.sql_schema.banned_ip import BannedIpModel
from app.security.service.service import IBannedIpRepository
from pkg.db_util.sql_conn import SqlConnection
from pkg.log.logger import get_logger

logger = get_logger(__name__)


def _to_entity(row: BannedIpModel) -> BannedIp:
    return BannedIp(
        id=row.id,
        ip_address=row.ip_address,
        reason=row.reason,
        banned_by=row.banned_by,
        banned_at=row.banned_at,
    )


class BannedIpRepository(IBannedIpRepository):

    def __init__(self, sql: SqlConnection):
        self.sql = sql
        self.logger = logger

    async def get_by_ip(self, ip_address: str) -> Optional[BannedIp]:
        async with self.sql.get_session() as session:
            result = await session.execute(
                select(BannedIpModel).where(BannedIpModel.ip_address == ip_address)
            )
            row = result.scalar_one_or_none()
            return _to_entity(row) if row else None

    async def get_by_id(self, ban_id: int) -> Optional[BannedIp]:
        async with self.sql.get_session() as session:
            row = await session.get(BannedIpModel, ban_id)
            return _to_entity(row) if row else None

    async def list_all(self) -> List[BannedIp]:
        async with self.sql.get_session() as session:
            result = await session.execute(
                select(BannedIpModel).order_by(BannedIpModel.id.desc())
            )
            return [_to_entity(r) for r in result.scalars().all()]

    async def create(self, ban: BannedIp) -> BannedIp:
        async with self.sql.get_session() as session:
            row = BannedIpModel(ip_address=ban.ip_address, reason=ban.reason, banned_by=ban.banned_by)
            session.add(row)
            await session.flush()
            await session.refresh(row)
            self.logger.info(f"Banned IP {row.ip_address} (id={row.id})")
            return _to_entity(row)

    async def delete(self, ban_id: int) -> bool:
        async with self.sql.get_session() as session:
            result = await session.execute(delete(BannedIpModel).where(BannedIpModel.id == ban_id))
            return (result.rowcount or 0) > 0
