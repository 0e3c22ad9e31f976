"""테스트 인프라 — 인메모리 SQLite DB, 세션, 레포지토리 픽스처.

Test infrastructure — In-memory SQLite database, session, and repository fixtures.
Schema is created before and dropped after each test, so every test starts
from an empty database.
"""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import DateTime, Integer, String
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from repokit.config import Settings
from repokit.database import Base, create_engine, create_session_factory
from repokit.models import SoftDeleteMixin
from repokit.repositories import Repository

# ---------------------------------------------------------------------------
# 테스트 DB 설정
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# 테스트 모델
# ---------------------------------------------------------------------------
class Author(Base):
    """하드 삭제 대상 모델 (Model without deleted_at, physically deleted)."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    @classmethod
    def table_name(cls) -> str:
        return "authors"


class Note(SoftDeleteMixin, Base):
    """소프트 삭제 대상 모델 (Model with deleted_at, soft-deleted)."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    author_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    @classmethod
    def table_name(cls) -> str:
        return "notes"


class TeamMember(Base):
    """복합 기본 키 모델, 기본 테이블 이름 사용 (Composite key, default table name)."""

    team_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    role: Mapped[str] = mapped_column(String(20), default="member")


class ConfigEntry(Base):
    """문자열 기본 키 모델 (Model keyed by a string)."""

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[str] = mapped_column(String(200), nullable=False)

    @classmethod
    def table_name(cls) -> str:
        return "config_entries"


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진. 스키마를 생성하고 종료 시 삭제합니다."""
    eng = create_engine(Settings(DATABASE_URL=TEST_DATABASE_URL, DB_POOL_PRE_PING=False))

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    factory = create_session_factory(engine)

    async with factory() as session:
        yield session
        # 커밋되지 않은 변경 폐기
        await session.rollback()


# ---------------------------------------------------------------------------
# 헬퍼 픽스처: 레포지토리
# ---------------------------------------------------------------------------
@pytest.fixture
def authors(db: AsyncSession) -> Repository[Author]:
    return Repository(Author, db)


@pytest.fixture
def notes(db: AsyncSession) -> Repository[Note]:
    return Repository(Note, db)


@pytest.fixture
def members(db: AsyncSession) -> Repository[TeamMember]:
    return Repository(TeamMember, db)


@pytest.fixture
def entries(db: AsyncSession) -> Repository[ConfigEntry]:
    return Repository(ConfigEntry, db)
