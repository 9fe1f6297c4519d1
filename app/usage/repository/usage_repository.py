# app/usage/repository/usage_repository.py
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.future import select

from app.usage.entity.usage import ApiUsageRecord
from app.usage.repository.sql_schema.api_usage_log import ApiUsageLogModel
from app.usage.service.service import IUsageRepository
from pkg.db_util.sql_conn import SqlConnection
from pkg.log.logger import get_logger

logger = get_logger(__name__)


def _to_entity(row: ApiUsageLogModel) -> ApiUsageRecord:
    return ApiUsageRecord(
        id=row.id,
        api_provider=row.api_provider,
        endpoint=row.endpoint,
        user_id=row.user_id,
        model=row.model,
        input_tokens=row.input_tokens,
        output_tokens=row.output_tokens,
        total_tokens=row.total_tokens,
        response_time_ms=row.response_time_ms,
        status_code=row.status_code,
        success=row.success,
        error_message=row.error_message,
        request_data=row.request_data,
        response_data=row.response_data,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        cost=float(row.cost) if row.cost is not None else None,
        created_at=row.created_at,
    )


class UsageRepository(IUsageRepository):
    """Persists one row per outbound provider attempt."""

    def __init__(self, sql: SqlConnection):
        self.sql = sql
        self.logger = logger

    async def record(self, record: ApiUsageRecord) -> int:
        async with self.sql.get_session() as session:
            row = ApiUsageLogModel(**record.model_dump(exclude={"id", "created_at"}))
            session.add(row)
            await session.flush()
            self.logger.debug(f"Usage recorded: provider={row.api_provider} success={row.success} id={row.id}")
            return row.id

    async def list_for_user(self, user_id: str, limit: int = 100) -> List[ApiUsageRecord]:
        async with self.sql.get_session() as session:
            result = await session.execute(
                select(ApiUsageLogModel)
                .where(ApiUsageLogModel.user_id == user_id)
                .order_by(ApiUsageLogModel.id.asc())
                .limit(limit)
            )
            return [_to_entity(r) for r in result.scalars().all()]

    async def count(self, user_id: Optional[str] = None) -> int:
        async with self.sql.get_session() as session:
            query = select(func.count(ApiUsageLogModel.id))
            if user_id is not None:
                query = query.where(ApiUsageLogModel.user_id == user_id)
            result = await session.execute(query)
            return int(result.scalar_one())
