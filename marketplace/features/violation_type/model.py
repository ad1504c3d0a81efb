from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.core.database import Base
from marketplace.models.enums import AccountKind


class ViolationType(Base):
    __tablename__ = "violation_types"
    __table_args__ = (
        CheckConstraint("point_cost > 0", name="ck_violation_type_point_cost_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    category = Column(SQLEnum(AccountKind), nullable=False)
    point_cost = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    requires_evidence = Column(Boolean, default=False, nullable=False)
    auto_detect = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    violations = relationship("Violation", back_populates="violation_type")
