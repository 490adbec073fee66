from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_identity
from ..db import get_db
from ..services.dashboard import build_dashboard
from ..services.identity import Identity


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("")
def dashboard(db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    return build_dashboard(db, identity)
