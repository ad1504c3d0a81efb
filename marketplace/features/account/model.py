from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint
from sqlalchemy.sql import func
from marketplace.core.database import Base
from marketplace.models.enums import AccountKind


class PenaltyAccountMixin:
    """Penalty columns shared by customers and providers"""

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=True)
    fcm_token = Column(String, nullable=True)  # Firebase Cloud Messaging token

    penalty_points = Column(Integer, default=100, nullable=False)
    # effective flag: point-floor suspension OR administrative suspension
    is_suspended = Column(Boolean, default=False, nullable=False)
    admin_suspended = Column(Boolean, default=False, nullable=False)
    suspended_at = Column(DateTime, nullable=True)
    suspended_until = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class Customer(PenaltyAccountMixin, Base):
    __tablename__ = "customers"
    __table_args__ = (
        CheckConstraint("penalty_points >= 0 AND penalty_points <= 100", name="ck_customer_points_range"),
    )

    kind = AccountKind.CUSTOMER


class Provider(PenaltyAccountMixin, Base):
    __tablename__ = "providers"
    __table_args__ = (
        CheckConstraint("penalty_points >= 0 AND penalty_points <= 100", name="ck_provider_points_range"),
    )

    kind = AccountKind.PROVIDER
