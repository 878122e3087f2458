"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows about every table
before create_all() runs at startup.
"""

from abilong_api.models.user import User, UserRole  # noqa: F401
