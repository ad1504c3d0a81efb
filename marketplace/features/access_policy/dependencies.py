"""Route guards for booking flows. Mount them with ``Depends`` on the booking endpoints."""
from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from marketplace.core.database import get_db
from marketplace.core.dependencies import get_current_account
from marketplace.features.access_policy.service import AccessPolicyService, BookingEligibility
from marketplace.features.account.store import AccountRef, AccountStore


def require_booking_eligibility(
    target_date: Optional[date] = None,
    ref: AccountRef = Depends(get_current_account),
    db: Session = Depends(get_db),
) -> BookingEligibility:
    eligibility = AccessPolicyService.check_booking_eligibility(db, ref, target_date)
    if not eligibility.allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=eligibility.to_dict())
    return eligibility


def require_minimum_points(minimum_points: int = 20):
    def checker(ref: AccountRef = Depends(get_current_account), db: Session = Depends(get_db)) -> AccountRef:
        account = AccountStore.get(db, ref)
        if account.is_suspended:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account suspended")
        if account.penalty_points < minimum_points:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "message": f"This action requires at least {minimum_points} penalty points",
                    "penalty_points": account.penalty_points,
                    "required_points": minimum_points,
                },
            )
        return ref
    return checker
