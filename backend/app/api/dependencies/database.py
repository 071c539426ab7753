# backend/app/api/dependencies/database.py
"""
Database-related dependencies.

Routes depend on this exact ``get_db`` so tests can override it once.
"""

from ...database import get_db

__all__ = ["get_db"]
