# backend/invite_gate/db/base.py

"""
Single source of truth for the SQLAlchemy Declarative Base.

This module must NOT import invite_gate.models; the models import Base from
here, and alembic/env.py imports both in that order.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass
