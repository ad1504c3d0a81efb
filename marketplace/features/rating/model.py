from sqlalchemy import Column, Integer, DateTime, ForeignKey, Enum as SQLEnum, CheckConstraint
from sqlalchemy.sql import func
from marketplace.core.database import Base
from marketplace.models.enums import RatedBy


class Rating(Base):
    __tablename__ = "ratings"
    __table_args__ = (
        CheckConstraint("rating_value >= 1 AND rating_value <= 5", name="ck_rating_value_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    # who wrote the rating; a customer rating is about the provider
    rated_by = Column(SQLEnum(RatedBy), nullable=False)
    rating_value = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
