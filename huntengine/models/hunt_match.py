"""Hunt match model — a single recorded hit of an indicator on an endpoint."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class HuntMatch(Base):
    __tablename__ = "hunt_matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    hunt_job_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("hunt_jobs.id", ondelete="CASCADE"), nullable=True, index=True
    )
    # No cascade from indicators; matched_value keeps the snapshot
    indicator_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("indicators.id", ondelete="SET NULL"), nullable=True, index=True
    )
    endpoint_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("endpoints.id"), nullable=False, index=True
    )
    source: Mapped[str] = mapped_column(String(20), nullable=False)  # inventory, log
    matched_value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    context_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
