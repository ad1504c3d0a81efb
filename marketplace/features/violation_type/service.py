import logging
from sqlalchemy.orm import Session
from marketplace.core.database import atomic
from marketplace.core.exceptions import ValidationError, ViolationTypeNotFound
from marketplace.features.violation_type.catalog import default_violation_types
from marketplace.features.violation_type.model import ViolationType
from marketplace.features.violation_type.schema import ViolationTypeCreate, ViolationTypeUpdate
from marketplace.models.enums import AccountKind
from typing import Optional, List, Dict

logger = logging.getLogger(__name__)


class ViolationTypeService:
    @staticmethod
    def get_by_code(db: Session, code: str) -> Optional[ViolationType]:
        return db.query(ViolationType).filter(ViolationType.code == code).first()

    @staticmethod
    def get_active_by_code(db: Session, code: str) -> ViolationType:
        vt = db.query(ViolationType).filter(
            ViolationType.code == code, ViolationType.is_active == True
        ).first()
        if not vt:
            raise ViolationTypeNotFound(f"Violation type not found or inactive: {code}")
        return vt

    @staticmethod
    def get_all_violation_types(
        db: Session, category: Optional[AccountKind] = None, include_inactive: bool = False
    ) -> List[ViolationType]:
        query = db.query(ViolationType)
        if not include_inactive:
            query = query.filter(ViolationType.is_active == True)
        if category is not None:
            query = query.filter(ViolationType.category == category)
        return query.order_by(ViolationType.point_cost.desc(), ViolationType.code).all()

    @staticmethod
    def create_violation_type(db: Session, data: ViolationTypeCreate) -> ViolationType:
        if ViolationTypeService.get_by_code(db, data.code):
            raise ValidationError(f"Violation type already exists: {data.code}")

        vt = ViolationType(**data.model_dump())
        with atomic(db):
            db.add(vt)
        db.refresh(vt)
        return vt

    @staticmethod
    def update_violation_type(db: Session, code: str, data: ViolationTypeUpdate) -> ViolationType:
        vt = ViolationTypeService.get_by_code(db, code)
        if not vt:
            raise ViolationTypeNotFound(f"Violation type not found: {code}")

        with atomic(db):
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(vt, field, value)
        db.refresh(vt)
        return vt

    @staticmethod
    def initialize_violation_types(db: Session, overwrite_existing: bool = True) -> Dict[str, int]:
        """
        Upsert the default catalog by code. Nothing is ever duplicated.

        With ``overwrite_existing`` (the admin initialize action) existing rows are
        brought back in line with the defaults. Without it only missing codes are
        created, so costs an admin edited survive a restart.
        """
        defaults = default_violation_types()
        created = updated = 0
        with atomic(db):
            for entry in defaults:
                vt = ViolationTypeService.get_by_code(db, entry["code"])
                if vt is None:
                    db.add(ViolationType(is_active=True, **entry))
                    created += 1
                    continue
                if not overwrite_existing:
                    continue
                changed = False
                for field, value in entry.items():
                    if getattr(vt, field) != value:
                        setattr(vt, field, value)
                        changed = True
                if changed:
                    updated += 1

        logger.info(f"Violation catalog initialized: {created} created, {updated} updated")
        return {"created": created, "updated": updated, "total": len(defaults)}
