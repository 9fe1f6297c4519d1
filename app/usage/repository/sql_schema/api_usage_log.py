from sqlalchemy import Boolean, Column, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from pkg.db_util.sql_alchemy.declarative_base import Base


class ApiUsageLogModel(Base):
    __tablename__ = "api_usage_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    api_provider = Column(String(64), nullable=False, index=True)
    endpoint = Column(String, nullable=True)
    user_id = Column(String, nullable=True)
    model = Column(String, nullable=True)
    input_tokens = Column(Integer, nullable=False, default=0)
    output_tokens = Column(Integer, nullable=False, default=0)
    total_tokens = Column(Integer, nullable=False, default=0)
    response_time_ms = Column(Integer, nullable=True)
    status_code = Column(Integer, nullable=True)
    success = Column(Boolean, nullable=False, default=True, index=True)
    error_message = Column(Text, nullable=True)
    request_data = Column(Text, nullable=True)
    response_data = Column(Text, nullable=True)  # truncated provider body
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    cost = Column(Numeric(10, 6), nullable=True)  # USD
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_api_usage_logs_provider_created", "api_provider", "created_at"),
        Index("ix_api_usage_logs_user_created", "user_id", "created_at"),
    )
