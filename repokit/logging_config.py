"""repokit 로깅 설정 모듈.

Logging configuration for repokit.
Repository operations log through the ``repokit`` logger tree. This module
sets its level and ships records to Axiom when credentials are configured.
Sensitive fields (password, token, secret) are automatically masked.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any, Sequence

from axiom_py import Client as AxiomClient
from axiom_py.logging import AxiomHandler
from sqlalchemy.sql.elements import ClauseElement

from repokit.config import Settings, settings

# 마스킹 대상 필드 패턴 — Fields to mask in logged conditions
_SENSITIVE_KEYS = re.compile(
    r"(password|passwd|secret|token|authorization|api_key|apikey|access_token|refresh_token|credential)",
    re.IGNORECASE,
)

ROOT_LOGGER = "repokit"


def _mask_dict(data: Any, depth: int = 0) -> Any:
    """민감 필드 자동 마스킹 — Recursively mask sensitive fields in dicts/lists."""
    if depth > 5:
        return "..."
    if isinstance(data, Mapping):
        return {
            k: "***" if _SENSITIVE_KEYS.search(str(k)) else _mask_dict(v, depth + 1)
            for k, v in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [_mask_dict(item, depth + 1) for item in data[:20]]
    return data


def _truncate(value: Any, max_len: int = 2000) -> Any:
    """로그 크기 제한 — Truncate large values to prevent oversized logs."""
    if isinstance(value, str) and len(value) > max_len:
        return value[:max_len] + "...(truncated)"
    return value


def describe_conditions(conditions: Sequence[Any]) -> list[Any]:
    """조건 집합을 로그에 남길 수 있는 형태로 변환합니다.

    Render a condition set for logging. SQL expressions are stringified
    without their bound values; dict conditions have sensitive keys masked.
    """
    described: list[Any] = []
    for condition in conditions:
        if isinstance(condition, ClauseElement) or hasattr(condition, "__clause_element__"):
            described.append(_truncate(str(condition)))
        elif isinstance(condition, Mapping):
            described.append(_mask_dict({str(k): _truncate(repr(v)) for k, v in condition.items()}))
        else:
            described.append(_truncate(repr(condition)))
    return described


class SensitiveDataFilter(logging.Filter):
    """로그 레코드의 조건 필드에서 민감 값을 마스킹하는 필터.

    Masks sensitive keys in the ``conditions`` attribute that log calls
    attach via ``extra`` before records leave the process.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        conditions = getattr(record, "conditions", None)
        if conditions is not None:
            record.conditions = _mask_dict(conditions)
        return True


def configure_logging(config: Settings = settings) -> AxiomHandler | None:
    """repokit 로거를 설정합니다.

    Configure the ``repokit`` logger level from LOG_LEVEL and, when both
    AXIOM_API_TOKEN and AXIOM_DATASET are set, attach an Axiom handler with
    the masking filter. Calling it again does not duplicate the handler.

    Args:
        config: 애플리케이션 설정 (Settings instance)

    Returns:
        AxiomHandler | None: 연결된 Axiom 핸들러 또는 None (Attached Axiom handler, if any)
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(config.LOG_LEVEL.upper())

    # Axiom 미설정시 로컬 로깅만 사용 — Local logging only if Axiom not configured
    if not (config.AXIOM_API_TOKEN and config.AXIOM_DATASET):
        return None

    for handler in logger.handlers:
        if isinstance(handler, AxiomHandler):
            return handler

    handler = AxiomHandler(AxiomClient(token=config.AXIOM_API_TOKEN), config.AXIOM_DATASET)
    handler.addFilter(SensitiveDataFilter())
    logger.addHandler(handler)
    return handler
