"""기본 CRUD 레포지토리 — 모든 레포지토리의 부모 클래스.

Base CRUD Repository — Parent class for all domain repositories.
Provides a uniform, type-parameterized CRUD contract for one record type,
delegating every operation to the bound session and normalizing only how
"no rows matched" is reported.

Usage:
    class AuthorRepository(Repository[Author]):
        def __init__(self, db: AsyncSession) -> None:
            super().__init__(Author, db)

    # 서브클래스 없이 바로 사용 — Without a subclass
    authors = init_repository(Author, db)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import DataError, IntegrityError, NoInspectionAvailable, NoResultFound
from sqlalchemy.ext.asyncio import AsyncSession

from repokit import store
from repokit.logging_config import describe_conditions
from repokit.models.base import Record, is_record_type
from repokit.utils.exceptions import BatchWriteError, RecordNotFoundError

logger = logging.getLogger(__name__)

# 제네릭 타입 변수 — 레코드 계약을 만족하는 매핑된 모델
# Generic type variable representing a mapped model satisfying the Record contract
RecordType = TypeVar("RecordType", bound=Record)


class AbstractRepository(ABC, Generic[RecordType]):
    """레포지토리 인터페이스 — 표준 CRUD 연산 정의.

    Repository interface defining the standard CRUD operations.
    Paired read variants let each call site decide whether an empty match is
    a normal outcome (find_one / find_many) or an error (*_or_fail).
    """

    @abstractmethod
    async def find_one(self, *conditions: Any) -> RecordType | None: ...

    @abstractmethod
    async def find_one_or_fail(self, *conditions: Any) -> RecordType: ...

    @abstractmethod
    async def find_many(self, *conditions: Any) -> list[RecordType]: ...

    @abstractmethod
    async def find_many_or_fail(self, *conditions: Any) -> list[RecordType]: ...

    @abstractmethod
    async def create(self, record: RecordType) -> RecordType: ...

    @abstractmethod
    async def batch_create(self, records: Sequence[RecordType]) -> int: ...

    @abstractmethod
    async def update(self, record: RecordType) -> None: ...

    @abstractmethod
    async def delete(self, record: RecordType) -> int: ...

    @abstractmethod
    def get_handle(self) -> AsyncSession: ...


class Repository(AbstractRepository[RecordType]):
    """제네릭 CRUD 레포지토리.

    Generic CRUD repository bound to one model class and one session.
    Holds no state besides those two; every call is one store interaction.
    Store failures propagate unmodified. Writes flush but never commit:
    the session owner decides the transaction boundary.

    Attributes:
        model: 이 레포지토리가 관리하는 모델 클래스 (The model class this repository manages)
    """

    def __init__(self, model: type[RecordType], db: AsyncSession) -> None:
        """레포지토리를 초기화합니다.

        Bind the repository to a model class and a session.

        Args:
            model: 레코드 계약을 만족하는 매핑된 모델 클래스
                   (Mapped model class satisfying the Record contract)
            db: 비동기 데이터베이스 세션 (Async database session)

        Raises:
            TypeError: 레코드 계약 미충족 또는 매핑되지 않은 클래스
                       (Model lacks table_name() or is not mapped)
        """
        if not is_record_type(model):
            raise TypeError(f"{model!r} does not provide table_name()")
        try:
            sa_inspect(model)
        except NoInspectionAvailable:
            raise TypeError(f"{model.__name__} is not a mapped class") from None

        self.model: type[RecordType] = model
        self._db: AsyncSession = db

    @property
    def table(self) -> str:
        """관리 대상 테이블 이름 (Table name reported by the model)."""
        return self.model.table_name()

    def _log(self, operation: str, conditions: Sequence[Any] = (), **fields: Any) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "%s on %s",
                operation,
                self.table,
                extra={
                    "operation": operation,
                    "table": self.table,
                    "conditions": describe_conditions(conditions),
                    **fields,
                },
            )

    async def find_one(self, *conditions: Any) -> RecordType | None:
        """조건에 맞는 첫 번째 레코드를 조회합니다.

        Find the first record ordered by primary key matching ``conditions``.

        Returns:
            RecordType | None: 조회된 레코드 또는 None (Found record, or None when nothing matched)
        """
        self._log("find_one", conditions)
        try:
            return await store.first(self._db, self.model, conditions)
        except NoResultFound:
            return None

    async def find_one_or_fail(self, *conditions: Any) -> RecordType:
        """조건에 맞는 첫 번째 레코드를 조회하고, 없으면 예외를 발생시킵니다.

        Find the first record ordered by primary key matching ``conditions``.

        Raises:
            RecordNotFoundError: 일치하는 레코드 없음 (Nothing matched)
        """
        self._log("find_one_or_fail", conditions)
        try:
            return await store.first(self._db, self.model, conditions)
        except NoResultFound as exc:
            raise RecordNotFoundError(self.table, conditions) from exc

    async def find_many(self, *conditions: Any) -> list[RecordType]:
        """조건에 맞는 모든 레코드를 조회합니다. 없으면 빈 목록.

        Find every record matching ``conditions``, ordered by primary key.
        An empty list is a normal result.
        """
        self._log("find_many", conditions)
        return await store.find(self._db, self.model, conditions)

    async def find_many_or_fail(self, *conditions: Any) -> list[RecordType]:
        """조건에 맞는 모든 레코드를 조회하고, 없으면 예외를 발생시킵니다.

        Find every record matching ``conditions``; zero matches is an error.

        Raises:
            RecordNotFoundError: 일치하는 레코드 없음 (Nothing matched)
        """
        self._log("find_many_or_fail", conditions)
        records = await store.find(self._db, self.model, conditions)
        if not records:
            raise RecordNotFoundError(self.table, conditions)
        return records

    async def create(self, record: RecordType) -> RecordType:
        """새 레코드를 생성합니다.

        Insert ``record``. Store-assigned values (primary key, defaults) are
        filled into the same instance, which is returned.

        Args:
            record: 생성할 레코드 (Fully populated record)

        Returns:
            RecordType: 식별자가 채워진 동일 인스턴스 (The same instance, now carrying its identity)
        """
        self._log("create")
        return await store.insert(self._db, record)

    async def batch_create(self, records: Sequence[RecordType]) -> int:
        """여러 레코드를 한 번에 생성합니다.

        Insert all ``records`` in one bulk write. Records that already have a
        stored row are not counted, neither on success nor on failure.

        Returns:
            int: 삽입된 행 수 (Rows inserted)

        Raises:
            BatchWriteError: 행 내용으로 인한 삽입 실패 (제약 위반, 잘못된 값),
                             이번 배치가 반영한 행 수와 원본 예외 포함
                             (Row-level failure such as a constraint violation;
                             carries the rows this batch kept and the store error)
            DBAPIError: 연결 오류 등 그 외 저장소 오류는 그대로 전파
                        (Connectivity and other store failures propagate unmodified)
        """
        self._log("batch_create", count=len(records))
        fresh = store.unsaved(records)
        try:
            return await store.insert_all(self._db, records)
        except (IntegrityError, DataError) as exc:
            raise BatchWriteError(self.table, store.persisted_count(fresh), exc) from exc

    async def update(self, record: RecordType) -> None:
        """레코드를 저장합니다 — 일치하는 기본 키가 없으면 삽입합니다 (upsert).

        Save ``record`` by identity. NOTE: this is an upsert. A record whose
        primary key is unset or matches no row is INSERTED, not rejected, and
        retrying with a fresh identity-less record inserts again. Use
        find_one_or_fail first when strict update semantics are required.

        Args:
            record: 저장할 레코드 (Record to save)
        """
        self._log("update")
        await store.save(self._db, record)

    async def delete(self, record: RecordType) -> int:
        """레코드를 삭제합니다.

        Delete the rows ``record`` identifies: by primary key when set,
        otherwise by its explicitly set attributes. Models with a
        ``deleted_at`` column are soft-deleted (timestamp set, row kept).

        Returns:
            int: 영향받은 행 수 (Rows affected)

        Raises:
            MissingConditionsError: 식별자와 조건이 모두 없음 (No identity and no conditions)
        """
        self._log("delete")
        return await store.remove(self._db, record)

    def get_handle(self) -> AsyncSession:
        """원본 세션을 반환합니다 — 레포지토리가 지원하지 않는 쿼리용 탈출구.

        Escape hatch: return the bound session for queries this repository
        does not model. Calls made through it bypass repository semantics
        (no not-found normalization, no logging). The soft-delete read filter
        still applies unless ``include_deleted`` is set.
        """
        return self._db


def init_repository(model: type[RecordType], db: AsyncSession) -> AbstractRepository[RecordType]:
    """서브클래스 없이 레포지토리를 생성합니다.

    Build a repository for ``model`` without declaring a subclass.

    Usage:
        authors = init_repository(Author, db)
    """
    return Repository(model, db)
