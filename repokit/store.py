"""저장소 협력자 — 조건 변환 및 CRUD 문 실행 계층.

Store collaborator — condition translation and CRUD statement execution.
Every function takes the AsyncSession it runs against. Repositories delegate
here and only decide how "no rows" is reported; everything this module
raises besides NoResultFound is a store failure.

Condition forms:
    - SQLAlchemy 표현식 / text() 절: 그대로 WHERE 조건으로 사용
      (Column expressions and text() clauses are used verbatim)
    - dict: 속성 이름별 동등 비교 (Equality per mapped attribute name)
    - list / set / frozenset: 기본 키 IN 조회 (Primary key IN lookup)
    - SQL 조각 문자열: "name = ?", "a" 처럼 ? 마다 뒤따르는 값 하나를 바인딩,
      list / tuple 값은 IN ? 용으로 확장
      (SQL fragment string; each ? binds the next condition, list/tuple
      values expand for ``IN ?``)
    - 그 외 str: 문자열 기본 키를 가진 모델에서만 기본 키로 해석
      (Any other string is a primary key, accepted only for string-keyed models)
    - 그 외 값: 기본 키 동등 비교, 복합 키는 tuple
      (Any other value is a primary key; tuples for composite keys)
"""

import logging
import re
from collections.abc import Iterator, Mapping
from itertools import islice
from typing import Any, Sequence, TypeVar

from sqlalchemy import (
    Select,
    TextClause,
    and_,
    bindparam,
    delete as sql_delete,
    inspect as sa_inspect,
    select,
    text,
    update as sql_update,
)
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapper
from sqlalchemy.sql.elements import ClauseElement, ColumnElement

from repokit.models.base import SOFT_DELETE_COLUMN, utc_now
from repokit.utils.exceptions import MissingConditionsError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 공백, 비교 연산자, 괄호가 있으면 SQL 조각으로 취급
# Whitespace, comparison operators or parentheses mark a SQL fragment
_SQL_FRAGMENT = re.compile(r"[\s=<>!()]")
_PLACEHOLDER = "?"


def build_criteria(model: type[Any], conditions: Sequence[Any]) -> list[ColumnElement[bool]]:
    """조건 집합을 WHERE 절 목록으로 변환합니다.

    Translate a condition set into WHERE criteria for ``model``.

    Args:
        model: 매핑된 모델 클래스 (Mapped model class)
        conditions: 조건 집합 (Condition set, see module docstring)

    Returns:
        list[ColumnElement[bool]]: WHERE 조건 목록 (WHERE criteria)

    Raises:
        InvalidRequestError: 알 수 없는 속성, 잘못된 기본 키 형태, 바인드 값 부족
                             (Unknown attribute, malformed identity, or missing bind values)
    """
    mapper: Mapper = sa_inspect(model)
    criteria: list[ColumnElement[bool]] = []
    pending = iter(conditions)
    bound = 0

    for condition in pending:
        if isinstance(condition, str):
            clause, used = _string_clause(mapper, condition, pending, bound)
            bound += used
            criteria.append(clause)
        elif isinstance(condition, ClauseElement) or hasattr(condition, "__clause_element__"):
            criteria.append(condition)
        elif isinstance(condition, Mapping):
            for key, value in condition.items():
                if key not in mapper.attrs:
                    raise InvalidRequestError(f"{model.__name__} has no mapped attribute {key!r}")
                criteria.append(getattr(model, key) == value)
        elif isinstance(condition, (list, set, frozenset)):
            if len(mapper.primary_key) != 1:
                raise InvalidRequestError(
                    f"{model.__name__} has a composite primary key; pass identity tuples one at a time"
                )
            criteria.append(mapper.primary_key[0].in_(list(condition)))
        else:
            criteria.append(identity_clause(mapper, condition))

    return criteria


def _string_clause(
    mapper: Mapper, fragment: str, pending: Iterator[Any], offset: int
) -> tuple[ClauseElement, int]:
    placeholders = fragment.count(_PLACEHOLDER)
    if placeholders or _SQL_FRAGMENT.search(fragment):
        values = list(islice(pending, placeholders))
        if len(values) != placeholders:
            raise InvalidRequestError(
                f"{fragment!r} expects {placeholders} bind value(s), got {len(values)}"
            )
        return bind_fragment(fragment, values, offset), placeholders

    if _has_string_key(mapper):
        return identity_clause(mapper, fragment), 0

    raise InvalidRequestError(
        f"{fragment!r} is neither a SQL fragment nor a valid "
        f"{mapper.class_.__name__} primary key"
    )


def bind_fragment(fragment: str, values: Sequence[Any], offset: int = 0) -> TextClause:
    """``?`` 자리표시자를 이름 있는 바인드 파라미터로 바꾼 text() 절을 생성합니다.

    Build a text() clause from ``fragment``, binding ``values`` positionally to
    its ``?`` placeholders. Names start at ``offset`` so several fragments can
    share one statement.
    """
    names = [f"arg_{offset + i}" for i in range(len(values))]
    pieces = fragment.split(_PLACEHOLDER)
    sql = pieces[0] + "".join(f":{name}{piece}" for name, piece in zip(names, pieces[1:]))

    params = [
        bindparam(name, list(value), expanding=True)
        if isinstance(value, (list, tuple, set, frozenset))
        else bindparam(name, value)
        for name, value in zip(names, values)
    ]
    return text(sql).bindparams(*params)


def _has_string_key(mapper: Mapper) -> bool:
    if len(mapper.primary_key) != 1:
        return False
    try:
        return mapper.primary_key[0].type.python_type is str
    except NotImplementedError:
        return False


def identity_clause(mapper: Mapper, identity: Any) -> ColumnElement[bool]:
    """기본 키 값으로 동등 비교 절을 생성합니다 (Primary key equality clause)."""
    columns = mapper.primary_key
    if len(columns) == 1:
        return columns[0] == identity

    if not isinstance(identity, tuple) or len(identity) != len(columns):
        raise InvalidRequestError(
            f"{mapper.class_.__name__} primary key needs a tuple of {len(columns)} values"
        )
    return and_(*(column == value for column, value in zip(columns, identity)))


def _select(model: type[Any], conditions: Sequence[Any]) -> Select:
    mapper: Mapper = sa_inspect(model)
    query: Select = select(model)
    criteria = build_criteria(model, conditions)
    if criteria:
        query = query.where(*criteria)
    return query.order_by(*mapper.primary_key)


async def first(db: AsyncSession, model: type[T], conditions: Sequence[Any]) -> T:
    """기본 키 순으로 첫 번째 일치 행을 조회합니다.

    Fetch the first match ordered by primary key.

    Raises:
        NoResultFound: 일치하는 행이 없음 (Zero rows matched)
    """
    result = await db.execute(_select(model, conditions).limit(1))
    return result.scalars().one()


async def find(db: AsyncSession, model: type[T], conditions: Sequence[Any]) -> list[T]:
    """일치하는 모든 행을 기본 키 순으로 조회합니다 (All matches, primary key order)."""
    result = await db.execute(_select(model, conditions))
    return list(result.scalars().all())


async def insert(db: AsyncSession, record: T) -> T:
    """레코드를 삽입하고 저장소가 부여한 값을 같은 인스턴스에 채웁니다.

    Insert ``record`` and load store-assigned values back onto the same instance.
    """
    db.add(record)
    await db.flush()
    await db.refresh(record)
    return record


def unsaved(records: Sequence[Any]) -> list[Any]:
    """아직 행으로 저장되지 않은 레코드 (Records not yet backed by a stored row)."""
    return [record for record in records if not sa_inspect(record).has_identity]


async def insert_all(db: AsyncSession, records: Sequence[Any]) -> int:
    """레코드 목록을 한 번의 flush로 삽입합니다.

    Insert all ``records`` in a single flush. The flush is atomic: on failure
    none of the rows are kept and the session must be rolled back. Records
    that already have a stored row are flushed too but not counted.

    Returns:
        int: 삽입된 행 수 (Number of inserted rows)
    """
    fresh = unsaved(records)
    db.add_all(records)
    await db.flush()
    return len(fresh)


def persisted_count(records: Sequence[Any]) -> int:
    """영속 상태인 레코드 수 (How many of ``records`` the session holds as persisted rows)."""
    return sum(1 for record in records if sa_inspect(record).persistent)


async def save(db: AsyncSession, record: T) -> T:
    """기본 키 기준 upsert — 일치하는 행이 없으면 삽입합니다.

    Upsert by identity. A record without a complete primary key, or whose key
    matches no row, is inserted; otherwise the stored row (soft-deleted rows
    included) is updated with the record's attributes. Values the store
    assigns end up on the caller's instance.

    Args:
        db: 비동기 데이터베이스 세션 (Async database session)
        record: 저장할 레코드 (Record to save)

    Returns:
        T: 세션이 추적하는 인스턴스 (Instance tracked by the session)
    """
    mapper: Mapper = sa_inspect(record).mapper
    identity = mapper.primary_key_from_instance(record)

    if any(value is None for value in identity):
        return await insert(db, record)

    # 소프트 삭제된 행도 identity map에 올려 merge가 UPDATE를 선택하도록 함.
    # identity map은 약한 참조이므로 flush가 끝날 때까지 existing을 유지해야 함
    # Load the row even if soft-deleted so merge() picks UPDATE over INSERT;
    # the identity map is weak-referencing, so ``existing`` must outlive the flush
    key = identity[0] if len(identity) == 1 else tuple(identity)
    existing = await db.get(mapper.class_, key, execution_options={"include_deleted": True})

    merged = await db.merge(record)
    await db.flush()
    await db.refresh(merged)
    logger.debug(
        "saved %s %r (%s)",
        mapper.class_.table_name(),
        key,
        "updated" if existing is not None else "inserted",
    )

    if merged is not record:
        for attr in mapper.column_attrs:
            setattr(record, attr.key, getattr(merged, attr.key))
    return merged


def delete_criteria(record: Any) -> list[ColumnElement[bool]]:
    """삭제 조건 — 기본 키가 있으면 기본 키, 없으면 명시적으로 설정된 속성.

    Criteria identifying the rows ``record`` stands for: its primary key when
    complete, otherwise every explicitly set, non-null column attribute.
    """
    state = sa_inspect(record)
    mapper: Mapper = state.mapper
    identity = mapper.primary_key_from_instance(record)

    if all(value is not None for value in identity):
        return [column == value for column, value in zip(mapper.primary_key, identity)]

    model = mapper.class_
    return [
        getattr(model, attr.key) == state.dict[attr.key]
        for attr in mapper.column_attrs
        if attr.key != SOFT_DELETE_COLUMN and state.dict.get(attr.key) is not None
    ]


async def remove(db: AsyncSession, record: Any) -> int:
    """레코드를 삭제합니다 — deleted_at 컬럼이 있으면 소프트 삭제.

    Delete the rows ``record`` identifies. Models with a ``deleted_at`` column
    get it stamped with the current UTC time (only rows not already deleted);
    other models are physically deleted.

    Returns:
        int: 영향받은 행 수 (Rows affected)

    Raises:
        MissingConditionsError: 식별자와 조건이 모두 없음 (No identity and no conditions)
    """
    mapper: Mapper = sa_inspect(record).mapper
    model = mapper.class_
    criteria = delete_criteria(record)
    if not criteria:
        raise MissingConditionsError(model.table_name())

    if SOFT_DELETE_COLUMN not in mapper.columns:
        result = await db.execute(sql_delete(model).where(*criteria))
        return result.rowcount

    deleted_at = utc_now()
    result = await db.execute(
        sql_update(model)
        .where(*criteria, getattr(model, SOFT_DELETE_COLUMN).is_(None))
        .values({SOFT_DELETE_COLUMN: deleted_at})
    )
    logger.debug("soft-deleted %d row(s) from %s", result.rowcount, model.table_name())

    # 세션에 없는 인스턴스는 동기화 대상이 아니므로 직접 표시
    # Instances outside the session are not synchronized by the UPDATE
    if result.rowcount and record not in db:
        setattr(record, SOFT_DELETE_COLUMN, deleted_at)
    return result.rowcount
