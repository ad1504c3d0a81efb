import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from marketplace.core.database import get_db
from marketplace.core.security import decode_access_token
from marketplace.features.account.store import AccountRef, AccountStore
from marketplace.features.admin.model import Admin
from marketplace.models.enums import AccountKind

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/admin/login")

ADMIN_KIND = "admin"


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode_subject(token: str):
    """Return (kind, id) from a bearer token or raise 401."""
    payload = decode_access_token(token)
    if payload is None:
        raise _credentials_exception()
    try:
        return payload.get("kind"), int(payload.get("sub"))
    except (ValueError, TypeError):
        raise _credentials_exception()


def get_current_account(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> AccountRef:
    """Customer or provider behind the bearer token. Tokens come from the marketplace auth service."""
    kind, account_id = _decode_subject(token)
    try:
        ref = AccountRef(AccountKind(kind), account_id)
    except ValueError:
        logger.info(f"Token kind {kind!r} is not an account kind")
        raise _credentials_exception()

    if AccountStore.find(db, ref) is None:
        raise _credentials_exception()
    return ref


def get_current_admin(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Admin:
    kind, admin_id = _decode_subject(token)
    if kind != ADMIN_KIND:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")

    admin = db.query(Admin).filter(Admin.id == admin_id).first()
    if admin is None:
        raise _credentials_exception()
    if not admin.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin account is inactive")
    return admin
