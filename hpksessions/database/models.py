from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hpksessions.exceptions import DecodingError


class TenantProfile(BaseModel):
    """テナントのカーディナリティプロファイル"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    user_count_min: int = Field(gt=0)
    user_count_max: int = Field(gt=0)
    sessions_per_user: int = Field(gt=0)

    @model_validator(mode="after")
    def _check_user_range(self) -> "TenantProfile":
        if self.user_count_min > self.user_count_max:
            raise ValueError("user_count_min must be <= user_count_max")
        return self


class UserSession(BaseModel):
    """階層パーティションキー（tenantId → userId → sessionId）を持つセッションレコード

    id はパーティションキーとは別のグローバル一意な識別子。
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    tenant_id: str = Field(alias="tenantId")  # level 1: テナント分離
    user_id: str = Field(alias="userId")  # level 2: ユーザー分散
    session_id: str = Field(alias="sessionId")  # level 3: セッション粒度
    activity: str
    timestamp: datetime

    @field_validator("id", "tenant_id", "user_id", "session_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    def to_document(self) -> Dict[str, Any]:
        """Cosmos DB に保存するドキュメント（camelCase, JSON互換）に変換"""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "UserSession":
        """Cosmos DB のドキュメントから復元する。システムプロパティ（_rid 等）は無視する。"""
        try:
            return cls.model_validate(document)
        except ValueError as e:
            record_id = document.get("id") if isinstance(document, dict) else None
            raise DecodingError(f"Failed to decode document: {e}", record_id=record_id) from e


class LoadReport(BaseModel):
    """RecordLoader の集計結果"""

    succeeded: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    @property
    def ok(self) -> bool:
        return self.failed == 0


class QueryPage(BaseModel):
    """ストアから返る1ページ分のドキュメントと、そのページの RU 消費量"""

    items: List[Dict[str, Any]]
    request_charge: float = 0.0


class QueryResult(BaseModel):
    """デコード済みのレコード1件、またはそのデコードエラー"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session: Optional[UserSession] = None
    error: Optional[DecodingError] = None
    request_charge: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None
