"""
Database models module.

Imports every model so that all tables are registered with Base.metadata before
table creation and migrations.
"""
from cvforge.db.models.user import User
from cvforge.db.models.cv import CV
from cvforge.db.models.order import Order
from cvforge.db.models.usage import UsageCounter
from cvforge.db.models.cover_letter import CoverLetter

__all__ = [
    "User",
    "CV",
    "Order",
    "UsageCounter",
    "CoverLetter",
]
