#!/usr/bin/env python3
"""
Create all tables for the configured DATABASE_URL.
Run from project root: python scripts/init_db.py [--drop]
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from hrms.config import settings
from hrms.db import Base, engine
import hrms.models.models  # noqa: F401  registers the tables


def run(drop: bool = False):
    if settings.database_url.startswith("sqlite:///./"):
        os.makedirs("var", exist_ok=True)
    if drop:
        Base.metadata.drop_all(bind=engine)
        print("Dropped all tables")
    Base.metadata.create_all(bind=engine)
    print(f"Created {len(Base.metadata.tables)} tables on {engine.url.render_as_string(hide_password=True)}")


if __name__ == "__main__":
    run(drop="--drop" in sys.argv[1:])
