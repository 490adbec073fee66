import uuid

import structlog
from sqlalchemy import func, update
from sqlalchemy.orm import Session

from ..models.models import Branch


log = structlog.get_logger(__name__)


def branch_count(db: Session, company_id: uuid.UUID) -> int:
    return int(db.query(func.count(Branch.id)).filter(Branch.company_id == company_id).scalar() or 0)


def set_headquarters(db: Session, company_id: uuid.UUID, branch_id: uuid.UUID) -> None:
    """Flag one branch as headquarters and clear every other branch of the company.

    A single UPDATE, so no reader can observe two headquarters. The caller commits.
    """
    db.flush()
    db.execute(
        update(Branch)
        .where(Branch.company_id == company_id)
        .values(is_headquarters=(Branch.id == branch_id))
        .execution_options(synchronize_session="fetch")
    )
    log.info("headquarters_changed", company_id=str(company_id), branch_id=str(branch_id))
