"""FastAPI 의존성 주입 모듈 — 레포지토리 주입 및 예외 변환.

FastAPI dependency injection module — Repository injection and error mapping.
Provides a dependency factory that binds a repository to the request-scoped
session, and exception handlers that turn repository errors into HTTP
responses.

Request Flow:
    1. get_db가 요청 범위 세션을 생성 (get_db opens a request-scoped session)
    2. repository_dependency가 해당 세션에 바인딩된 레포지토리를 주입
       (repository_dependency injects a repository bound to that session)
    3. 엔드포인트가 *_or_fail 연산을 호출, 결과 없음은 RecordNotFoundError
       (Endpoint calls *_or_fail operations; nothing matched raises RecordNotFoundError)
    4. 등록된 핸들러가 예외를 404 응답으로 변환
       (Registered handler converts it into a 404 response)
"""

from typing import Annotated, Callable

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from repokit.database import get_db
from repokit.repositories.base import RecordType, Repository
from repokit.schemas.common import ErrorResponse
from repokit.utils.exceptions import MissingConditionsError, RecordNotFoundError


def repository_dependency(model: type[RecordType]) -> Callable[[AsyncSession], Repository[RecordType]]:
    """모델에 대한 레포지토리 의존성을 생성합니다.

    Create a dependency that yields a Repository for ``model`` bound to the
    request session.

    Usage:
        AuthorRepo = Annotated[Repository[Author], Depends(repository_dependency(Author))]

    Args:
        model: 레포지토리가 관리할 모델 클래스 (Model class for the repository)

    Returns:
        Callable: FastAPI 의존성 함수 (FastAPI dependency callable)
    """

    def _repository(db: Annotated[AsyncSession, Depends(get_db)]) -> Repository[RecordType]:
        return Repository(model, db)

    return _repository


async def _record_not_found_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    # 404 Not Found — 요청한 레코드 없음 (Requested record does not exist)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=ErrorResponse(detail=str(exc), table=exc.table).model_dump(),
    )


async def _missing_conditions_handler(request: Request, exc: MissingConditionsError) -> JSONResponse:
    # 400 Bad Request — 조건 없는 삭제 요청 (Unconditioned delete)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(detail=str(exc), table=exc.table).model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """레포지토리 예외 핸들러를 앱에 등록합니다.

    Register handlers mapping RecordNotFoundError to 404 and
    MissingConditionsError to 400.
    """
    app.add_exception_handler(RecordNotFoundError, _record_not_found_handler)
    app.add_exception_handler(MissingConditionsError, _missing_conditions_handler)
