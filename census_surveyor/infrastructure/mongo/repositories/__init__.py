"""
Repository implementations for MongoDB.

Repositories translate between domain models and documents.
"""

from .households import HouseholdNotFoundError, HouseholdRepository

__all__ = ["HouseholdNotFoundError", "HouseholdRepository"]
