"""레코드 계약 및 소프트 삭제 믹스인 정의.

Record contract and soft-delete mixin definitions.

Any type that can report its table name satisfies the Record contract.
It is a structural protocol, so heterogeneous models share one repository
family without a common ancestor.
"""

from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column

# 소프트 삭제 표식 컬럼 이름 — Column whose presence turns delete into a soft delete
SOFT_DELETE_COLUMN: str = "deleted_at"


@runtime_checkable
class Record(Protocol):
    """저장 가능한 레코드가 제공해야 하는 최소 기능.

    Minimum capability a storable type must expose.
    table_name() must return a non-empty name and be deterministic per type.
    """

    def table_name(self) -> str: ...


class SoftDeleteMixin:
    """소프트 삭제 믹스인 — deleted_at 컬럼을 추가.

    Adds a nullable ``deleted_at`` timestamp. Deleting a row of a model with
    this column stamps the current UTC time instead of removing the row, and
    default reads skip stamped rows.

    Attributes:
        deleted_at: 삭제 일시 UTC, 미삭제 시 None (Deletion timestamp, None while live)
    """

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None, index=True
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


def utc_now() -> datetime:
    """현재 UTC 시각 (Current time in UTC)."""
    return datetime.now(timezone.utc)


def is_record_type(candidate: Any) -> bool:
    """주어진 타입이 레코드 계약을 만족하는지 확인합니다.

    Check whether ``candidate`` is a class exposing a callable table_name().
    """
    return isinstance(candidate, type) and callable(getattr(candidate, "table_name", None))
