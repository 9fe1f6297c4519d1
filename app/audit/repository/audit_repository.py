# app/audit/repository/audit_repository.py
from typing import List, Optional

from sqlalchemy import Date, func, or_
from sqlalchemy.future import select

from app.audit.entity.audit import AuditEntry, AuditPage, AuditQuery
from app.audit.repository.sql_schema.audit_log import AuditLogModel
from app.audit.service.service import IAuditRepository
from pkg.db_util.sql_conn import SqlConnection
from pkg.log.logger import get_logger

logger = get_logger(__name__)


def _to_entity(row: AuditLogModel) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        user_id=row.user_id,
        action=row.action,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        details=row.details or {},
        created_at=row.created_at,
    )


class AuditRepository(IAuditRepository):
    """Stores audit trail entries."""

    def __init__(self, sql: SqlConnection):
        self.sql = sql
        self.logger = logger

    async def record(self, entry: AuditEntry) -> int:
        async with self.sql.get_session() as session:
            row = AuditLogModel(
                user_id=entry.user_id,
                action=entry.action,
                ip_address=entry.ip_address,
                user_agent=entry.user_agent,
                details=entry.details or {},
            )
            session.add(row)
            await session.flush()
            self.logger.info(f"Audit: action={entry.action} user={entry.user_id} id={row.id}")
            return row.id

    async def list_entries(self, action: Optional[str] = None, user_id: Optional[str] = None,
                           limit: int = 100) -> List[AuditEntry]:
        async with self.sql.get_session() as session:
            query = select(AuditLogModel)
            if action is not None:
                query = query.where(AuditLogModel.action == action)
            if user_id is not None:
                query = query.where(AuditLogModel.user_id == user_id)
            result = await session.execute(query.order_by(AuditLogModel.id.desc()).limit(limit))
            return [_to_entity(r) for r in result.scalars().all()]

    async def search(self, query: AuditQuery) -> AuditPage:
        async with self.sql.get_session() as session:
            stmt = select(AuditLogModel)
            if query.user_id:
                stmt = stmt.where(AuditLogModel.user_id == query.user_id)
            if query.action:
                stmt = stmt.where(AuditLogModel.action.ilike(f"%{query.action}%"))
            if query.search:
                pattern = f"%{query.search}%"
                stmt = stmt.where(or_(
                    AuditLogModel.action.ilike(pattern),
                    AuditLogModel.ip_address.ilike(pattern),
                ))
            if query.date_from:
                stmt = stmt.where(func.date(AuditLogModel.created_at, type_=Date) >= query.date_from)
            if query.date_to:
                stmt = stmt.where(func.date(AuditLogModel.created_at, type_=Date) <= query.date_to)

            total = (await session.execute(
                select(func.count()).select_from(stmt.subquery())
            )).scalar_one()

            result = await session.execute(
                stmt.order_by(AuditLogModel.created_at.desc(), AuditLogModel.id.desc())
                .offset((query.page - 1) * query.per_page)
                .limit(query.per_page)
            )
            return AuditPage(
                items=[_to_entity(r) for r in result.scalars().all()],
                total=int(total),
                page=query.page,
                per_page=query.per_page,
            )
