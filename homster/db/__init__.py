"""
Homster persistence.

PostgreSQL through SQLAlchemy Core. DatabaseConnection owns the process-wide
engine; UnitOfWork hands out one session per request or task, so a booking
claim, its alert updates and its ledger entries commit or roll back together.
"""

from homster.db.connection import DatabaseConnection
from homster.db.unit_of_work import UnitOfWork

__all__ = ["DatabaseConnection", "UnitOfWork"]
