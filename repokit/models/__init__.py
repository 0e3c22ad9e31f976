"""레코드 모델 패키지 — 레코드 계약과 공통 믹스인의 중앙 임포트 지점.

Record models package — Central import point for the Record contract
and shared mixins.

Modules:
    base: 레코드 프로토콜, 소프트 삭제 믹스인 (Record protocol, SoftDeleteMixin)
"""

from repokit.models.base import SOFT_DELETE_COLUMN, Record, SoftDeleteMixin, is_record_type, utc_now

__all__ = ["SOFT_DELETE_COLUMN", "Record", "SoftDeleteMixin", "is_record_type", "utc_now"]
