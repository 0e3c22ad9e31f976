"""데이터베이스 엔진 및 세션 설정 모듈.

Database engine and session configuration module.
Builds the async SQLAlchemy engine and session factory from Settings,
defines the ORM base class, and installs the soft-delete read filter on
the session class every factory produces.
"""

import re
from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, ORMExecuteState, Session, declared_attr, with_loader_criteria
from sqlalchemy.pool import StaticPool

from repokit.config import Settings, settings
from repokit.models.base import SOFT_DELETE_COLUMN

# 약어 뒤 단어 경계, 소문자/숫자 뒤 대문자 경계 — HTTPLog -> http_log
_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def snake_case(name: str) -> str:
    """클래스 이름을 snake_case 테이블 이름으로 변환 (TeamMember -> team_member)."""
    return _WORD_BOUNDARY.sub(r"\1_\2", _ACRONYM_BOUNDARY.sub(r"\1_\2", name)).lower()


class Base(DeclarativeBase):
    """SQLAlchemy 선언적 베이스 클래스.

    Declarative base class for repository-managed models.
    The table name comes from table_name(), so a model satisfies the Record
    contract and names its table in one place. Override table_name() to pick
    a name other than the snake_case class name.
    """

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return cls.table_name()

    @classmethod
    def table_name(cls) -> str:
        return snake_case(cls.__name__)


class StoreSession(Session):
    """소프트 삭제 필터가 적용되는 동기 세션 클래스.

    Sync session class backing every AsyncSession from create_session_factory().
    SELECTs issued through it skip rows whose deleted_at is set unless the
    statement carries ``execution_options(include_deleted=True)``.
    """


@event.listens_for(StoreSession, "do_orm_execute")
def _exclude_soft_deleted(execute_state: ORMExecuteState) -> None:
    # 컬럼/관계 지연 로드는 상위 조회의 조건을 이미 따름
    # Column and relationship loads inherit criteria from the parent query
    if (
        not execute_state.is_select
        or execute_state.is_column_load
        or execute_state.is_relationship_load
        or execute_state.execution_options.get("include_deleted", False)
    ):
        return

    for mapper in execute_state.all_mappers:
        if SOFT_DELETE_COLUMN in mapper.columns:
            execute_state.statement = execute_state.statement.options(
                with_loader_criteria(
                    mapper.class_,
                    lambda cls: cls.deleted_at.is_(None),
                    include_aliases=True,
                )
            )


def create_engine(config: Settings = settings) -> AsyncEngine:
    """설정으로부터 비동기 엔진을 생성합니다.

    Create the async engine described by ``config``.
    Pool sizing only applies to server databases; in-memory SQLite uses a
    StaticPool so every session sees the same database.

    Args:
        config: 애플리케이션 설정 (Settings instance)

    Returns:
        AsyncEngine: 비동기 SQLAlchemy 엔진 (Async SQLAlchemy engine)
    """
    kwargs: dict[str, Any] = {"echo": config.DEBUG, "pool_pre_ping": config.DB_POOL_PRE_PING}

    if config.is_sqlite:
        if ":memory:" in config.DATABASE_URL:
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_size"] = config.DB_POOL_SIZE
        kwargs["max_overflow"] = config.DB_MAX_OVERFLOW

    return create_async_engine(config.DATABASE_URL, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """소프트 삭제 필터가 적용된 세션 팩토리를 생성합니다.

    Create an async session factory whose sessions apply the soft-delete filter.
    expire_on_commit=False keeps attributes readable after commit without a refresh.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        sync_session_class=StoreSession,
        expire_on_commit=False,
    )


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """전역 설정 기반의 기본 세션 팩토리 (Default factory built from global settings)."""
    return create_session_factory(create_engine(settings))


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """비동기 데이터베이스 세션을 생성하고 요청 종료 시 커밋 후 닫습니다.

    FastAPI dependency that yields an async database session.
    Commits when the request finishes cleanly, rolls back when it raises,
    and always closes the session.

    Yields:
        AsyncSession: SQLAlchemy 비동기 세션 인스턴스 (Async session instance)
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
