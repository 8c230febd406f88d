"""
MongoDB integration: client factory and repositories.
"""

from .client import MockMongoClient, MongoConfig, create_mongo_client
from .repositories import HouseholdNotFoundError, HouseholdRepository

__all__ = [
    "HouseholdNotFoundError",
    "HouseholdRepository",
    "MockMongoClient",
    "MongoConfig",
    "create_mongo_client",
]
