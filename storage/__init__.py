"""
Local storage layer for the government dataset catalogue
Dataset store interface, SQLite implementation and seed data
"""

from .base import DatasetStore, StoreUnavailableError
from .database import DatabaseManager

__all__ = ['DatasetStore', 'StoreUnavailableError', 'DatabaseManager']
