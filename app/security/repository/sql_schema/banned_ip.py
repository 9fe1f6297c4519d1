from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from pkg.db_util.sql_alchemy.declarative_base import Base


class BannedIpModel(Base):
    __tablename__ = "banned_ips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip_address = Column(String(45), nullable=False, unique=True, index=True)
    reason = Column(String(255), nullable=True)
    banned_by = Column(String, nullable=True)
    banned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
