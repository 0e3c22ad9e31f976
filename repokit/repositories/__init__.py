"""레포지토리 패키지 — 데이터베이스 쿼리 계층.

Repository package — Database query layer.
Domain repositories extend Repository for generic CRUD and add their own queries.
"""

from repokit.repositories.base import AbstractRepository, RecordType, Repository, init_repository

__all__ = ["AbstractRepository", "RecordType", "Repository", "init_repository"]
