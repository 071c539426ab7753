# backend/app/repositories/__init__.py
"""
Repository layer for CoachDesk.

Repositories own all SQLAlchemy queries. Services obtain them through
``RepositoryFactory`` and never commit from here.

Usage:
    from app.repositories import RepositoryFactory

    leads = RepositoryFactory.create_lead_repository(db)
    page, total = leads.list_leads(coach_id=coach.id, page=1, per_page=20)
"""

from .base_repository import BaseRepository, IRepository
from .factory import RepositoryFactory

__all__ = ["BaseRepository", "IRepository", "RepositoryFactory"]
