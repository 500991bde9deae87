"""Indicator model — persisted indicators of compromise."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Indicator(Base):
    __tablename__ = "indicators"
    __table_args__ = (
        Index("ix_indicators_org_active", "organization_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )  # file_hash, file_path, file_name, process_name
    value: Mapped[str] = mapped_column(Text, nullable=False)
    hash_algorithm: Mapped[Optional[str]] = mapped_column(
        String(10), nullable=True
    )  # md5, sha1, sha256
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")
    threat_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
