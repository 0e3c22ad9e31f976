"""repokit — 제네릭 CRUD 레포지토리.

Generic, type-parameterized CRUD repositories over SQLAlchemy's async ORM.
"""

from repokit.database import Base, create_engine, create_session_factory
from repokit.models import Record, SoftDeleteMixin
from repokit.repositories import AbstractRepository, Repository, init_repository
from repokit.utils.exceptions import (
    BatchWriteError,
    MissingConditionsError,
    RecordNotFoundError,
    RepositoryError,
)

__all__ = [
    "AbstractRepository",
    "Base",
    "BatchWriteError",
    "MissingConditionsError",
    "Record",
    "RecordNotFoundError",
    "Repository",
    "RepositoryError",
    "SoftDeleteMixin",
    "create_engine",
    "create_session_factory",
    "init_repository",
]
