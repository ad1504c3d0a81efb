from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from marketplace.models.enums import AccountKind


class ViolationTypeBase(BaseModel):
    code: str = Field(..., min_length=1)
    name: str
    category: AccountKind
    point_cost: int = Field(..., gt=0)
    description: Optional[str] = None
    requires_evidence: bool = False
    auto_detect: bool = False
    is_active: bool = True


class ViolationTypeCreate(ViolationTypeBase):
    pass


class ViolationTypeUpdate(BaseModel):
    name: Optional[str] = None
    point_cost: Optional[int] = Field(None, gt=0)
    description: Optional[str] = None
    requires_evidence: Optional[bool] = None
    auto_detect: Optional[bool] = None
    is_active: Optional[bool] = None


class ViolationTypeResponse(ViolationTypeBase):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class InitializeViolationTypesResponse(BaseModel):
    created: int
    updated: int
    total: int
