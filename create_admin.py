"""
Create (or reset the password of) an admin account and seed the violation catalog.

    python create_admin.py [username]
"""
import getpass
import logging
import sys

from sqlalchemy.orm import Session

from marketplace.core.database import Base, SessionLocal, engine
from marketplace.core.security import get_password_hash
from marketplace.features.admin.model import Admin
from marketplace.features.violation_type.service import ViolationTypeService
from marketplace.models import registry  # noqa: F401

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("create_admin")


def create_admin(username: str = "admin"):
    Base.metadata.create_all(bind=engine, checkfirst=True)
    db: Session = SessionLocal()
    try:
        password = getpass.getpass(f"Password for '{username}': ").strip()
        if not password:
            logger.error("Password cannot be empty")
            return

        admin = db.query(Admin).filter(Admin.username == username).first()
        if admin:
            admin.password_hash = get_password_hash(password)
            admin.is_active = True
            logger.info(f"Admin '{username}' already exists, password updated")
        else:
            db.add(Admin(username=username, password_hash=get_password_hash(password), is_active=True))
            logger.info(f"Admin '{username}' created")
        db.commit()

        result = ViolationTypeService.initialize_violation_types(db, overwrite_existing=False)
        logger.info(f"Violation catalog: {result['total']} types ({result['created']} new)")
    finally:
        db.close()


if __name__ == "__main__":
    create_admin(sys.argv[1] if len(sys.argv) > 1 else "admin")
