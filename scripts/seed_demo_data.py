"""
Seed the local database with a demo tenant: one company, two branches and a
user for every role, plus a few tasks, a report and a message.

Usage:
  python scripts/seed_demo_data.py

This script is idempotent: running it multiple times will upsert the same
records based on unique fields (email for users, name for companies/branches).
All demo accounts share the password "demo-pass".
"""

import os
import sys
from datetime import timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from hrms.db import SessionLocal, Base, engine
from hrms.models.models import (
    Branch,
    Company,
    DailyReport,
    Message,
    Profile,
    RoleAssignment,
    Task,
    User,
)
from hrms.auth.security import get_password_hash
from hrms.services.time_rules import business_today


DEMO_PASSWORD = "demo-pass"


def ensure_company(session, name: str, **fields) -> Company:
    company = session.query(Company).filter(Company.name == name).first()
    if company:
        for k, v in fields.items():
            setattr(company, k, v)
        session.flush()
        return company
    company = Company(name=name, **fields)
    session.add(company)
    session.flush()
    return company


def ensure_branch(session, company: Company, name: str, **fields) -> Branch:
    branch = session.query(Branch).filter(Branch.company_id == company.id, Branch.name == name).first()
    if branch:
        for k, v in fields.items():
            setattr(branch, k, v)
        session.flush()
        return branch
    branch = Branch(company_id=company.id, name=name, **fields)
    session.add(branch)
    session.flush()
    return branch


def ensure_user(session, email: str, first_name: str, last_name: str) -> User:
    user = session.query(User).filter(User.email == email).first()
    if user is None:
        user = User(email=email, password_hash=get_password_hash(DEMO_PASSWORD), is_active=True)
        session.add(user)
        session.flush()
    profile = session.query(Profile).filter(Profile.id == user.id).first()
    if profile is None:
        profile = Profile(id=user.id)
        session.add(profile)
    profile.first_name = first_name
    profile.last_name = last_name
    profile.email = email
    session.flush()
    return user


def ensure_role(session, user: User, role: str, company: Company, branch: Branch | None = None) -> RoleAssignment:
    ra = (
        session.query(RoleAssignment)
        .filter(RoleAssignment.user_id == user.id, RoleAssignment.company_id == company.id)
        .first()
    )
    if ra is None:
        ra = RoleAssignment(user_id=user.id, company_id=company.id)
        session.add(ra)
    ra.role = role
    ra.branch_id = branch.id if branch else None
    session.flush()
    return ra


def ensure_task(session, title: str, **fields) -> Task:
    task = session.query(Task).filter(Task.title == title, Task.company_id == fields["company_id"]).first()
    if task:
        return task
    task = Task(title=title, **fields)
    session.add(task)
    session.flush()
    return task


def main():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        acme = ensure_company(
            session,
            "Acme Corp",
            description="Demo tenant",
            subscription_type="professional",
            branches_limit=3,
            employees_limit=30,
        )
        hq = ensure_branch(session, acme, "Head Office", city="Vancouver", country="Canada", is_headquarters=True)
        north = ensure_branch(session, acme, "North Shore", city="North Vancouver", country="Canada", is_headquarters=False)

        admin = ensure_user(session, "admin@acme.example", "Ada", "Admin")
        ensure_role(session, admin, "company_admin", acme, hq)
        manager = ensure_user(session, "manager@acme.example", "Max", "Manager")
        ensure_role(session, manager, "manager", acme, hq)
        alice = ensure_user(session, "alice@acme.example", "Alice", "Worker")
        ensure_role(session, alice, "employee", acme, hq)
        bob = ensure_user(session, "bob@acme.example", "Bob", "Builder")
        ensure_role(session, bob, "employee", acme, north)

        today = business_today()
        common = dict(company_id=acme.id, branch_id=hq.id, assigned_by=manager.id)
        ensure_task(session, "Prepare weekly roster", assigned_to=alice.id, priority="high", due_date=today + timedelta(days=2), **common)
        ensure_task(session, "Restock supplies", assigned_to=alice.id, status="in_progress", priority="medium", **common)
        ensure_task(session, "Close out inspection", assigned_to=alice.id, status="completed", priority="low", **common)

        yesterday = today - timedelta(days=1)
        if not session.query(DailyReport).filter(DailyReport.user_id == alice.id, DailyReport.date == yesterday).first():
            session.add(DailyReport(
                user_id=alice.id,
                company_id=acme.id,
                branch_id=hq.id,
                date=yesterday,
                summary="Sorted the stock room and updated the roster draft.",
                hours_worked=7.5,
                tasks_completed=["Stock room", "Roster draft"],
            ))
        if not session.query(Message).filter(Message.sender_id == manager.id, Message.recipient_id == alice.id).first():
            session.add(Message(sender_id=manager.id, recipient_id=alice.id, content="Welcome aboard, Alice!"))

        session.commit()
        print("Seed completed: Acme demo tenant upserted.")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
