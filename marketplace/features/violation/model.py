from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Enum as SQLEnum, Text, JSON, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.core.database import Base
from marketplace.models.enums import ViolationStatus, AppealStatus, DetectedBy


class Violation(Base):
    __tablename__ = "penalty_violations"
    __table_args__ = (
        CheckConstraint(
            "(customer_id IS NULL) <> (provider_id IS NULL)",
            name="ck_violation_single_owner",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=True, index=True)
    violation_type_id = Column(Integer, ForeignKey("violation_types.id"), nullable=False, index=True)
    # copied from the violation type when recorded, never changed afterwards
    points_deducted = Column(Integer, nullable=False)
    status = Column(SQLEnum(ViolationStatus), default=ViolationStatus.ACTIVE, nullable=False)
    appeal_status = Column(SQLEnum(AppealStatus), default=AppealStatus.NONE, nullable=False)

    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    report_id = Column(Integer, nullable=True)
    rating_id = Column(Integer, ForeignKey("ratings.id"), nullable=True)
    violation_details = Column(Text, nullable=True)
    evidence_urls = Column(JSON, nullable=True)
    detected_by = Column(SQLEnum(DetectedBy), default=DetectedBy.SYSTEM, nullable=False)
    detected_by_admin_id = Column(Integer, ForeignKey("admins.id"), nullable=True)
    # repeat detections carrying the same key return the first violation
    idempotency_key = Column(String, unique=True, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    # appeal
    appeal_reason = Column(Text, nullable=True)
    appeal_submitted_at = Column(DateTime, nullable=True)
    appeal_reviewed_by = Column(Integer, ForeignKey("admins.id"), nullable=True)
    appeal_reviewed_at = Column(DateTime, nullable=True)
    appeal_review_notes = Column(Text, nullable=True)

    # reversal
    reversed_at = Column(DateTime, nullable=True)
    reversed_by_admin_id = Column(Integer, ForeignKey("admins.id"), nullable=True)
    reversal_reason = Column(Text, nullable=True)

    violation_type = relationship("ViolationType", back_populates="violations")
