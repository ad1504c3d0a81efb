import logging
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional, Dict
from marketplace.core.database import atomic
from marketplace.features.account.store import AccountRef, AccountStore
from marketplace.features.penalty.service import MAX_POINTS
from marketplace.features.penalty_adjustment.service import PenaltyAdjustmentService
from marketplace.models.enums import AdjustmentType

logger = logging.getLogger(__name__)

RESET_MONTHS = (1, 4, 7, 10)


class PenaltyResetService:
    @staticmethod
    def next_reset_date(now: Optional[datetime] = None) -> datetime:
        """First day of the next calendar quarter, midnight."""
        now = now or datetime.utcnow()
        for month in RESET_MONTHS:
            candidate = datetime(now.year, month, 1)
            if candidate > now:
                return candidate
        return datetime(now.year + 1, RESET_MONTHS[0], 1)

    @staticmethod
    def run_reset(db: Session, now: Optional[datetime] = None) -> Dict:
        """
        Bring every account below the maximum back to it.

        Each account is its own transaction. Accounts already at the maximum are
        not touched, so running twice in a quarter writes nothing the second time.
        An administrative suspension survives the reset.
        """
        now = now or datetime.utcnow()
        summary = {kind.value: 0 for kind in AccountStore.MODELS}

        for kind, model in AccountStore.MODELS.items():
            pending = [account_id for (account_id,) in db.query(model.id).filter(model.penalty_points < MAX_POINTS)]
            for account_id in pending:
                ref = AccountRef(kind, account_id)
                with atomic(db):
                    account = AccountStore.get(db, ref, for_update=True)
                    previous = account.penalty_points
                    if previous >= MAX_POINTS:
                        continue
                    account.penalty_points = MAX_POINTS
                    account.is_suspended = account.admin_suspended
                    if not account.admin_suspended:
                        account.suspended_at = None
                        account.suspended_until = None
                    PenaltyAdjustmentService.append(
                        db,
                        ref,
                        AdjustmentType.RESET,
                        points_adjusted=MAX_POINTS - previous,
                        previous_points=previous,
                        new_points=MAX_POINTS,
                        reason=f"Quarterly reset to {MAX_POINTS} points",
                        now=now,
                    )
                summary[kind.value] += 1

        summary["total"] = sum(summary.values())
        logger.info(f"Quarterly penalty reset complete: {summary}")
        return summary
