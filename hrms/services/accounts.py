from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.models import User, Profile


log = structlog.get_logger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()


def create_account(db: Session, *, email: str, password_hash: str, first_name: str, last_name: str, phone: Optional[str] = None) -> User:
    """Create a user and its profile. The caller checks for duplicates and commits."""
    email = normalize_email(email)
    user = User(email=email, password_hash=password_hash, is_active=True)
    db.add(user)
    db.flush()
    db.add(Profile(id=user.id, first_name=first_name, last_name=last_name, email=email, phone=phone))
    db.flush()
    log.info("account_created", user_id=str(user.id))
    return user
