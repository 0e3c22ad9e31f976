"""레포지토리 예외 클래스 모듈.

Repository exception classes module.
Classifies failures that the repository layer itself produces. Raw store
errors (SQLAlchemy and DBAPI exceptions) are never wrapped here; they reach
the caller unmodified. The one exception is BatchWriteError, which must carry
an affected-row count alongside the store error.

Usage:
    from repokit.utils.exceptions import RecordNotFoundError
    try:
        author = await repo.find_one_or_fail(author_id)
    except RecordNotFoundError:
        ...
"""

from typing import Any, Sequence


class RepositoryError(Exception):
    """모든 repokit 예외의 부모 클래스.

    Base class for every error raised by repokit itself.
    """


class RecordNotFoundError(RepositoryError, LookupError):
    """레코드 없음 예외 — *_or_fail 조회에서 일치하는 행이 없을 때 사용.

    Raised by find_one_or_fail / find_many_or_fail when zero rows matched.
    Never raised by find_one / find_many, which treat an empty match as a
    normal outcome.

    Args:
        table: 조회한 테이블 이름 (Logical table name that was queried)
        conditions: 조회 조건 (Condition set passed to the read)
    """

    def __init__(self, table: str, conditions: Sequence[Any] = ()) -> None:
        self.table: str = table
        self.conditions: tuple[Any, ...] = tuple(conditions)
        super().__init__(f"record not found in {table!r}")


class MissingConditionsError(RepositoryError):
    """조건 없는 삭제 예외 — 식별자도 조건도 없는 레코드로 삭제를 시도할 때 사용.

    Raised when a delete is requested for a record that carries neither a
    primary key nor any explicitly set attribute, which would otherwise
    delete every row of the table.
    """

    def __init__(self, table: str) -> None:
        self.table: str = table
        super().__init__(f"refusing to delete from {table!r} without conditions")


class BatchWriteError(RepositoryError):
    """일괄 삽입 실패 예외 — 실패 시점까지 반영된 행 수를 함께 전달.

    Bulk insert failure carrying the number of rows the store kept.
    The original store error is available as ``orig`` and as ``__cause__``.

    Args:
        table: 대상 테이블 이름 (Target table name)
        rows_affected: 반영된 행 수 (Rows the store kept before failing)
        orig: 원본 저장소 예외 (Original store exception)
    """

    def __init__(self, table: str, rows_affected: int, orig: BaseException) -> None:
        self.table: str = table
        self.rows_affected: int = rows_affected
        self.orig: BaseException = orig
        super().__init__(f"batch insert into {table!r} failed after {rows_affected} row(s): {orig}")
