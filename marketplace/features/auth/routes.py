from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from datetime import timedelta
from marketplace.core.config import settings
from marketplace.core.database import get_db
from marketplace.core.dependencies import ADMIN_KIND
from marketplace.core.security import create_access_token
from marketplace.features.admin.service import AdminService
from marketplace.features.auth.schema import Token

router = APIRouter()


@router.post("/admin/login", response_model=Token)
def admin_login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """Admin login. Customer and provider tokens are issued by the marketplace auth service."""
    admin = AdminService.authenticate_admin(db, form_data.username, form_data.password)
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not admin.is_active:
        raise HTTPException(status_code=400, detail="Admin account is inactive")

    access_token = create_access_token(
        data={"sub": str(admin.id), "kind": ADMIN_KIND},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {"access_token": access_token, "token_type": "bearer"}
