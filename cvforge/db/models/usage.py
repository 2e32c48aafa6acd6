from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from cvforge.db.base import Base


class UsageCounter(Base):
    """
    Per-user, per-feature, per-period usage counter.

    One row per (user_id, feature, period_start). Periods are calendar months in
    UTC; rows from elapsed periods are ignored, never summed.
    """
    __tablename__ = "usage_counters"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    feature = Column(String(40), nullable=False)  # "cvGenerations", "coverLetterGenerations", "aiRuns"
    period_start = Column(DateTime, nullable=False)  # naive UTC, inclusive
    period_end = Column(DateTime, nullable=False)  # naive UTC, exclusive
    count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "feature", "period_start", name="uq_usage_user_feature_period"),
        Index("idx_usage_user_period", "user_id", "period_start"),
    )

    def __repr__(self):
        return f"<UsageCounter(user_id={self.user_id}, feature='{self.feature}', count={self.count})>"
