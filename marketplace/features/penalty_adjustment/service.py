from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Iterable
from marketplace.features.account.store import AccountRef
from marketplace.features.penalty_adjustment.model import PenaltyAdjustment
from marketplace.models.enums import AdjustmentType

# what an account holder sees under "my adjustments" by default
POSITIVE_ADJUSTMENT_TYPES = (AdjustmentType.RESTORE, AdjustmentType.BONUS, AdjustmentType.RESET)


class PenaltyAdjustmentService:
    @staticmethod
    def append(
        db: Session,
        ref: AccountRef,
        adjustment_type: AdjustmentType,
        points_adjusted: int,
        previous_points: int,
        new_points: int,
        reason: Optional[str] = None,
        related_violation_id: Optional[int] = None,
        admin_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> PenaltyAdjustment:
        """Add one ledger row to the current transaction. The caller commits."""
        entry = PenaltyAdjustment(
            adjustment_type=adjustment_type,
            points_adjusted=points_adjusted,
            previous_points=previous_points,
            new_points=new_points,
            reason=reason,
            related_violation_id=related_violation_id,
            adjusted_by_admin_id=admin_id,
            created_at=now or datetime.now(),
            **ref.owner_columns,
        )
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def list_adjustments(
        db: Session,
        ref: Optional[AccountRef] = None,
        types: Optional[Iterable[AdjustmentType]] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict:
        query = db.query(PenaltyAdjustment)
        if ref is not None:
            query = query.filter(ref.owner_filter(PenaltyAdjustment))
        if types:
            query = query.filter(PenaltyAdjustment.adjustment_type.in_(list(types)))

        total = query.count()
        items = (
            query.order_by(PenaltyAdjustment.created_at.desc(), PenaltyAdjustment.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {
            "items": items,
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(items) < total,
        }

    @staticmethod
    def for_violation(db: Session, violation_id: int) -> List[PenaltyAdjustment]:
        return (
            db.query(PenaltyAdjustment)
            .filter(PenaltyAdjustment.related_violation_id == violation_id)
            .order_by(PenaltyAdjustment.id)
            .all()
        )

    @staticmethod
    def reward_stats(db: Session, ref: AccountRef, now: Optional[datetime] = None) -> Dict:
        now = now or datetime.now()
        month_ago = now - timedelta(days=30)
        base = db.query(PenaltyAdjustment).filter(
            ref.owner_filter(PenaltyAdjustment),
            PenaltyAdjustment.adjustment_type == AdjustmentType.BONUS,
        )

        def _sum(query) -> int:
            return query.with_entities(func.coalesce(func.sum(PenaltyAdjustment.points_adjusted), 0)).scalar()

        this_month = base.filter(PenaltyAdjustment.created_at >= month_ago)
        return {
            "total_rewards": base.count(),
            "total_points_earned": _sum(base),
            "rewards_this_month": this_month.count(),
            "points_earned_this_month": _sum(this_month),
            "recent_rewards": base.order_by(
                PenaltyAdjustment.created_at.desc(), PenaltyAdjustment.id.desc()
            ).limit(10).all(),
        }
