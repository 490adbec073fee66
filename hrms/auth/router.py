import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import Profile, User
from ..schemas.auth import (
    SignUpRequest,
    LoginRequest,
    RefreshRequest,
    TokenResponse,
    ProfileUpdate,
)
from ..services.accounts import create_account, find_user_by_email
from ..services.dashboard import compose_panels
from ..services.identity import Identity, resolve_identity
from .security import (
    get_password_hash,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_identity,
    http_bearer,
    user_from_token,
)
import structlog


router = APIRouter(prefix="/auth", tags=["auth"])
log = structlog.get_logger(__name__)


def _issue_tokens(db: Session, user: User) -> TokenResponse:
    identity = resolve_identity(db, user)
    access = create_access_token(str(user.id), roles=[identity.role] if identity.role else [])
    refresh = create_refresh_token(str(user.id))
    return TokenResponse(access_token=access, refresh_token=refresh)


@router.post("/signup", response_model=TokenResponse, status_code=201)
def signup(payload: SignUpRequest, db: Session = Depends(get_db)):
    if find_user_by_email(db, payload.email):
        raise HTTPException(status_code=409, detail="Email already registered. Please sign in instead.")
    user = create_account(
        db,
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    db.commit()
    return _issue_tokens(db, user)


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = find_user_by_email(db, req.email)
    if not user or not user.is_active or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    log.info("user_signed_in", user_id=str(user.id))
    return _issue_tokens(db, user)


def _sub_uuid(payload: dict) -> uuid.UUID:
    try:
        return uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid subject")


@router.post("/refresh", response_model=TokenResponse)
def refresh(req: RefreshRequest, db: Session = Depends(get_db)):
    payload = decode_token(req.refresh_token)
    if payload.get("type") != "refresh":
        raise HTTPException(status_code=400, detail="Invalid refresh token")
    user = db.query(User).filter(User.id == _sub_uuid(payload)).first()
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User not active")
    return _issue_tokens(db, user)


@router.get("/session")
def session(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
):
    """Resolved identity for the client, or where to send an anonymous visitor."""
    if creds is None:
        return {"authenticated": False, "redirect_to": "/auth"}
    try:
        user = user_from_token(creds.credentials, db)
    except HTTPException:
        return {"authenticated": False, "redirect_to": "/auth"}
    identity = resolve_identity(db, user)
    return {
        "authenticated": True,
        "identity": identity.to_dict(),
        "panels": compose_panels(identity),
    }


@router.get("/me")
def me(identity: Identity = Depends(get_identity)):
    return identity.to_dict()


@router.patch("/me")
def update_me(payload: ProfileUpdate, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    profile = db.query(Profile).filter(Profile.id == identity.user_uuid).first()
    if profile is None:
        profile = Profile(id=identity.user_uuid, email=identity.email)
        db.add(profile)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(profile, field, value)
    db.commit()
    db.refresh(profile)
    return {
        "id": str(profile.id),
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        "email": profile.email,
        "phone": profile.phone,
        "avatar_url": profile.avatar_url,
    }
