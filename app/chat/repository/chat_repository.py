# app/chat/repository/chat_repository.py

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Date, delete, func, or_
from sqlalchemy.future import select

from app.chat.entity.chat import ChatExchange, ChatPage, ChatQuery, SessionSummary
from app.chat.repository.sql_schema.chat_history import ChatHistoryModel
from app.chat.service.service import IChatRepository
from pkg.db_util.sql_conn import SqlConnection
from pkg.log.logger import get_logger

logger = get_logger(__name__)


def _to_entity(row: ChatHistoryModel) -> ChatExchange:
    return ChatExchange.model_validate(row, from_attributes=True)


class ChatRepository(IChatRepository):
    """Handles all database interactions for stored chat exchanges."""

    def __init__(self, sql: SqlConnection):
        self.sql = sql
        self.logger = logger

    # ────────────────────────────────────────────────
    # User-facing
    # ────────────────────────────────────────────────

    async def save_exchange(self, exchange: ChatExchange) -> ChatExchange:
        async with self.sql.get_session() as session:
            row = ChatHistoryModel(
                user_id=exchange.user_id,
                message=exchange.message,
                response=exchange.response,
                session_id=exchange.session_id,
            )
            session.add(row)
            await session.flush()
            await session.refresh(row)
            self.logger.info(f"Chat exchange saved: id={row.id} session={row.session_id}")
            return _to_entity(row)

    async def get_exchange(self, exchange_id: int, user_id: Optional[str] = None) -> Optional[ChatExchange]:
        """Fetch one exchange; when ``user_id`` is given it must own the row."""
        async with self.sql.get_session() as session:
            query = select(ChatHistoryModel).where(ChatHistoryModel.id == exchange_id)
            if user_id is not None:
                query = query.where(ChatHistoryModel.user_id == user_id)
            result = await session.execute(query)
            row = result.scalar_one_or_none()
            return _to_entity(row) if row else None

    async def list_history(self, user_id: str, session_id: Optional[str] = None) -> List[ChatExchange]:
        async with self.sql.get_session() as session:
            query = select(ChatHistoryModel).where(ChatHistoryModel.user_id == user_id)
            if session_id:
                query = query.where(ChatHistoryModel.session_id == session_id)
            result = await session.execute(
                query.order_by(ChatHistoryModel.created_at.desc(), ChatHistoryModel.id.desc())
            )
            return [_to_entity(r) for r in result.scalars().all()]

    async def list_sessions(self, user_id: str) -> List[SessionSummary]:
        """One summary per session, most recently active first."""
        async with self.sql.get_session() as session:
            latest = (
                select(
                    ChatHistoryModel.session_id.label("session_id"),
                    func.max(ChatHistoryModel.id).label("last_id"),
                    func.count(ChatHistoryModel.id).label("message_count"),
                )
                .where(ChatHistoryModel.user_id == user_id)
                .where(ChatHistoryModel.session_id.isnot(None))
                .group_by(ChatHistoryModel.session_id)
                .subquery()
            )
            result = await session.execute(
                select(ChatHistoryModel, latest.c.message_count)
                .join(latest, ChatHistoryModel.id == latest.c.last_id)
                .order_by(ChatHistoryModel.id.desc())
            )
            return [
                SessionSummary(
                    session_id=row.session_id,
                    last_message=row.message or "",
                    last_message_at=row.created_at,
                    message_count=int(count),
                )
                for row, count in result.all()
            ]

    async def delete_exchange(self, exchange_id: int, user_id: Optional[str] = None) -> bool:
        async with self.sql.get_session() as session:
            stmt = delete(ChatHistoryModel).where(ChatHistoryModel.id == exchange_id)
            if user_id is not None:
                stmt = stmt.where(ChatHistoryModel.user_id == user_id)
            result = await session.execute(stmt)
            deleted = result.rowcount or 0
            self.logger.info(f"Deleted chat exchange {exchange_id}: {deleted} row(s)")
            return deleted > 0

    async def delete_session(self, user_id: str, session_id: str) -> int:
        async with self.sql.get_session() as session:
            result = await session.execute(
                delete(ChatHistoryModel)
                .where(ChatHistoryModel.user_id == user_id)
                .where(ChatHistoryModel.session_id == session_id)
            )
            self.logger.info(f"Deleted session {session_id} for user {user_id}: {result.rowcount} row(s)")
            return result.rowcount or 0

    async def delete_all_for_user(self, user_id: str) -> int:
        async with self.sql.get_session() as session:
            result = await session.execute(
                delete(ChatHistoryModel).where(ChatHistoryModel.user_id == user_id)
            )
            self.logger.info(f"Deleted all chat history for user {user_id}: {result.rowcount} row(s)")
            return result.rowcount or 0

    # ────────────────────────────────────────────────
    # Moderation
    # ────────────────────────────────────────────────

    async def search(self, query: ChatQuery) -> ChatPage:
        async with self.sql.get_session() as session:
            stmt = select(ChatHistoryModel)
            if query.flagged is not None:
                stmt = stmt.where(ChatHistoryModel.flagged == query.flagged)
            if query.reviewed is not None:
                stmt = stmt.where(ChatHistoryModel.reviewed == query.reviewed)
            if query.user_id:
                stmt = stmt.where(ChatHistoryModel.user_id == query.user_id)
            if query.session_id:
                stmt = stmt.where(ChatHistoryModel.session_id == query.session_id)
            if query.search:
                pattern = f"%{query.search}%"
                stmt = stmt.where(or_(
                    ChatHistoryModel.message.ilike(pattern),
                    ChatHistoryModel.response.ilike(pattern),
                ))
            if query.date_from:
                stmt = stmt.where(func.date(ChatHistoryModel.created_at, type_=Date) >= query.date_from)
            if query.date_to:
                stmt = stmt.where(func.date(ChatHistoryModel.created_at, type_=Date) <= query.date_to)

            total = (await session.execute(
                select(func.count()).select_from(stmt.subquery())
            )).scalar_one()

            result = await session.execute(
                stmt.order_by(ChatHistoryModel.created_at.desc(), ChatHistoryModel.id.desc())
                .offset((query.page - 1) * query.per_page)
                .limit(query.per_page)
            )
            return ChatPage(
                items=[_to_entity(r) for r in result.scalars().all()],
                total=int(total),
                page=query.page,
                per_page=query.per_page,
            )

    async def existing_ids(self, exchange_ids: List[int]) -> List[int]:
        if not exchange_ids:
            return []
        async with self.sql.get_session() as session:
            result = await session.execute(
                select(ChatHistoryModel.id).where(ChatHistoryModel.id.in_(exchange_ids))
            )
            return [r for r in result.scalars().all()]

    async def delete_many(self, exchange_ids: List[int]) -> int:
        if not exchange_ids:
            return 0
        async with self.sql.get_session() as session:
            result = await session.execute(
                delete(ChatHistoryModel).where(ChatHistoryModel.id.in_(exchange_ids))
            )
            self.logger.info(f"Bulk deleted {result.rowcount} chat exchange(s)")
            return result.rowcount or 0

    async def set_flag(self, exchange_id: int, flagged_by: str, reason: Optional[str],
                       at: datetime) -> Optional[ChatExchange]:
        async with self.sql.get_session() as session:
            row = await session.get(ChatHistoryModel, exchange_id)
            if row is None:
                return None
            row.flagged = True
            row.flagged_by = flagged_by
            row.flagged_at = at
            row.flag_reason = reason
            await session.flush()
            await session.refresh(row)
            return _to_entity(row)

    async def clear_flag(self, exchange_id: int) -> Optional[ChatExchange]:
        async with self.sql.get_session() as session:
            row = await session.get(ChatHistoryModel, exchange_id)
            if row is None:
                return None
            row.flagged = False
            row.flagged_by = None
            row.flagged_at = None
            row.flag_reason = None
            await session.flush()
            await session.refresh(row)
            return _to_entity(row)

    async def mark_reviewed(self, exchange_id: int, reviewed_by: str, at: datetime, reject: bool = False,
                            notes: Optional[str] = None) -> Optional[ChatExchange]:
        """Mark reviewed; a rejection also flags the exchange, with the notes as the reason."""
        async with self.sql.get_session() as session:
            row = await session.get(ChatHistoryModel, exchange_id)
            if row is None:
                return None
            row.reviewed = True
            row.reviewed_by = reviewed_by
            row.reviewed_at = at
            if reject:
                row.flagged = True
                row.flagged_by = reviewed_by
                row.flagged_at = at
                if notes:
                    row.flag_reason = notes
            await session.flush()
            await session.refresh(row)
            return _to_entity(row)
