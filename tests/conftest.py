"""Shared fixtures: a throwaway SQLite database, the app client and a demo tenant.

Environment is set before anything from ``hrms`` is imported, since settings and
the engine are built at import time.
"""
import os
import tempfile
from types import SimpleNamespace

_DB_DIR = tempfile.mkdtemp(prefix="hrms-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["AUTO_CREATE_DB"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["TZ_DEFAULT"] = "UTC"
os.environ["FRONTEND_DIST"] = os.path.join(_DB_DIR, "no-frontend")

import pytest
from fastapi.testclient import TestClient

from hrms.auth.security import create_access_token, get_password_hash
from hrms.db import Base, SessionLocal, engine
from hrms.main import app
from hrms.models.models import Branch, Company, Profile, RoleAssignment, User


PASSWORD = "secret-pass"


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def make_company(db, name="Acme Corp", **fields):
    data = dict(subscription_type="professional", branches_limit=3, employees_limit=10)
    data.update(fields)
    company = Company(name=name, **data)
    db.add(company)
    db.commit()
    return company


def make_branch(db, company, name, city="Vancouver", is_headquarters=False):
    branch = Branch(company_id=company.id, name=name, city=city, is_headquarters=is_headquarters)
    db.add(branch)
    db.commit()
    return branch


def make_user(db, email, first_name="Test", last_name="User", role=None, company=None, branch=None):
    user = User(email=email, password_hash=get_password_hash(PASSWORD), is_active=True)
    db.add(user)
    db.flush()
    db.add(Profile(id=user.id, first_name=first_name, last_name=last_name, email=email))
    if role:
        db.add(RoleAssignment(
            user_id=user.id,
            role=role,
            company_id=company.id if company else None,
            branch_id=branch.id if branch else None,
        ))
    db.commit()
    return user


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture
def tenant(db):
    """Acme with two branches and one user per role, plus a rival company."""
    acme = make_company(db, "Acme Corp")
    hq = make_branch(db, acme, "Head Office", is_headquarters=True)
    north = make_branch(db, acme, "North Shore", city="North Vancouver")

    platform_admin = make_user(db, "root@platform.example", "Pat", "Root", role="admin", company=acme)
    company_admin = make_user(db, "admin@acme.example", "Ada", "Admin", role="company_admin", company=acme, branch=hq)
    manager = make_user(db, "manager@acme.example", "Max", "Manager", role="manager", company=acme, branch=hq)
    alice = make_user(db, "alice@acme.example", "Alice", "Worker", role="employee", company=acme, branch=hq)
    bob = make_user(db, "bob@acme.example", "Bob", "Builder", role="employee", company=acme, branch=north)
    drifter = make_user(db, "drifter@example.com", "Dee", "Drifter")

    globex = make_company(db, "Globex")
    globex_hq = make_branch(db, globex, "Globex HQ", city="Springfield", is_headquarters=True)
    globex_admin = make_user(db, "admin@globex.example", "Gus", "Globex", role="company_admin", company=globex, branch=globex_hq)
    globex_worker = make_user(db, "worker@globex.example", "Gina", "Globex", role="employee", company=globex, branch=globex_hq)

    return SimpleNamespace(
        acme=acme,
        hq=hq,
        north=north,
        platform_admin=platform_admin,
        company_admin=company_admin,
        manager=manager,
        alice=alice,
        bob=bob,
        drifter=drifter,
        globex=globex,
        globex_hq=globex_hq,
        globex_admin=globex_admin,
        globex_worker=globex_worker,
    )
