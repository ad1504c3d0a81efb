from sqlalchemy import Column, Integer, DateTime, ForeignKey, Enum as SQLEnum, Text, CheckConstraint
from sqlalchemy.sql import func
from marketplace.core.database import Base
from marketplace.models.enums import AdjustmentType


class PenaltyAdjustment(Base):
    """Ledger row. Inserted once per balance change and never updated."""

    __tablename__ = "penalty_adjustments"
    __table_args__ = (
        CheckConstraint(
            "(customer_id IS NULL) <> (provider_id IS NULL)",
            name="ck_adjustment_single_owner",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=True, index=True)
    adjustment_type = Column(SQLEnum(AdjustmentType), nullable=False, index=True)
    points_adjusted = Column(Integer, nullable=False)  # negative for penalties
    previous_points = Column(Integer, nullable=False)
    new_points = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    related_violation_id = Column(Integer, ForeignKey("penalty_violations.id"), nullable=True)
    adjusted_by_admin_id = Column(Integer, ForeignKey("admins.id"), nullable=True)  # null = system
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
