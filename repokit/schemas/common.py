"""공통 Pydantic 응답 스키마 정의.

Common Pydantic response schema definitions shared by the HTTP integration.
"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """오류 응답 스키마.

    Error response body returned by the registered exception handlers.

    Attributes:
        detail: 오류 메시지 (Error message)
        table: 관련 테이블 이름 (Table the failed operation targeted)
    """

    detail: str  # 오류 메시지 (Human-readable error message)
    table: str | None = None  # 대상 테이블 (Target table name, if known)
