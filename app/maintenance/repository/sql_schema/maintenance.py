from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from pkg.db_util.sql_alchemy.declarative_base import Base


class MaintenanceModeModel(Base):
    """Single settings row; created on first update."""
    __tablename__ = "maintenance_mode"

    id = Column(Integer, primary_key=True, autoincrement=True)
    enabled = Column(Boolean, nullable=False, default=False)
    message = Column(Text, nullable=True)
    scheduled_start = Column(DateTime(timezone=True), nullable=True)
    scheduled_end = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class MaintenanceAllowedIpModel(Base):
    __tablename__ = "maintenance_mode_allowed_ips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip_address = Column(String(45), nullable=False, unique=True, index=True)
    description = Column(String(255), nullable=True)
    added_by = Column(String, nullable=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
