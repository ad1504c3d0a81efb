from sqlalchemy.orm import Session, joinedload
from datetime import datetime
from typing import Optional, List, Dict
from marketplace.core.exceptions import NotFoundError
from marketplace.features.account.store import AccountRef
from marketplace.features.violation.model import Violation
from marketplace.features.violation_type.model import ViolationType
from marketplace.models.enums import ViolationStatus, AppealStatus


class ViolationService:
    @staticmethod
    def get_violation(db: Session, violation_id: int, for_update: bool = False) -> Violation:
        query = db.query(Violation).filter(Violation.id == violation_id)
        if for_update:
            query = query.with_for_update()
        violation = query.first()
        if not violation:
            raise NotFoundError(f"Violation not found: {violation_id}")
        return violation

    @staticmethod
    def get_by_idempotency_key(db: Session, key: str) -> Optional[Violation]:
        return db.query(Violation).filter(Violation.idempotency_key == key).first()

    @staticmethod
    def _of_code(db: Session, ref: AccountRef, code: str):
        return (
            db.query(Violation)
            .join(ViolationType, Violation.violation_type_id == ViolationType.id)
            .filter(ref.owner_filter(Violation), ViolationType.code == code)
        )

    @staticmethod
    def count_of_code(
        db: Session,
        ref: AccountRef,
        code: str,
        since: datetime,
        status: Optional[ViolationStatus] = None,
    ) -> int:
        query = ViolationService._of_code(db, ref, code).filter(Violation.created_at >= since)
        if status is not None:
            query = query.filter(Violation.status == status)
        return query.count()

    @staticmethod
    def find_recent_of_code(db: Session, ref: AccountRef, code: str, since: datetime) -> Optional[Violation]:
        return (
            ViolationService._of_code(db, ref, code)
            .filter(Violation.created_at >= since)
            .order_by(Violation.created_at.desc())
            .first()
        )

    @staticmethod
    def get_penalty_history(
        db: Session,
        ref: Optional[AccountRef] = None,
        status: Optional[ViolationStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict:
        query = db.query(Violation).options(joinedload(Violation.violation_type))
        if ref is not None:
            query = query.filter(ref.owner_filter(Violation))
        if status is not None:
            query = query.filter(Violation.status == status)

        total = query.count()
        items = (
            query.order_by(Violation.created_at.desc(), Violation.id.desc())
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
    def list_pending_appeals(db: Session) -> List[Violation]:
        return (
            db.query(Violation)
            .options(joinedload(Violation.violation_type))
            .filter(Violation.appeal_status == AppealStatus.PENDING)
            .order_by(Violation.appeal_submitted_at.asc(), Violation.id.asc())
            .all()
        )
