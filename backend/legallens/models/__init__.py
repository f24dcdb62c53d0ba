"""
Database Models
Exports all SQLAlchemy models for the application.
"""

from legallens.models.storage_entry import StorageEntry

__all__ = ['StorageEntry']
