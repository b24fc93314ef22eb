from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, JSON, Integer, Float, Index
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


class BranchStatus(str, Enum):
    generated = "generated"
    review = "review"
    selected = "selected"
    writing = "writing"
    complete = "complete"


class Branch(Base):
    """A persisted branch candidate for one anchor event.

    At most one branch per anchor holds status ``selected``; the repository
    enforces that when selecting.
    """
    __tablename__ = "branches"

    id: Mapped[str] = mapped_column(String, primary_key=True, index=True)  # UUID strings
    work_id: Mapped[str] = mapped_column(String, index=True)  # The source work the anchor belongs to
    anchor_event_id: Mapped[str] = mapped_column(String, index=True)
    alternative_id: Mapped[str] = mapped_column(String)

    premise: Mapped[dict] = mapped_column(JSON, default=dict)
    trajectory: Mapped[dict] = mapped_column(JSON, default=dict)
    character_states: Mapped[list] = mapped_column(JSON, default=list)
    world_state: Mapped[dict] = mapped_column(JSON, default=dict)
    generation_params: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    status: Mapped[BranchStatus] = mapped_column(
        SAEnum(BranchStatus, native_enum=False, length=16),
        default=BranchStatus.generated,
        index=True,
    )
    quality_score: Mapped[float] = mapped_column(Float, default=0.0)
    user_preference: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 1-5 rating

    # Optimistic versioning: every update bumps this
    version: Mapped[int] = mapped_column(Integer, default=1)
    parent_branch_id: Mapped[Optional[str]] = mapped_column(ForeignKey("branches.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_branches_anchor_status", "anchor_event_id", "status"),
        Index("ix_branches_anchor_alternative", "anchor_event_id", "alternative_id"),
    )
