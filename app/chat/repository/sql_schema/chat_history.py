from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.sql import func

from pkg.db_util.sql_alchemy.declarative_base import Base


class ChatHistoryModel(Base):
    __tablename__ = "chat_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    message = Column(Text, nullable=False)
    response = Column(Text, nullable=False)
    session_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Moderation fields
    flagged = Column(Boolean, nullable=False, default=False, index=True)
    reviewed = Column(Boolean, nullable=False, default=False, index=True)
    flagged_by = Column(String, nullable=True)
    reviewed_by = Column(String, nullable=True)
    flagged_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    flag_reason = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_chat_history_user_session", "user_id", "session_id"),
    )
