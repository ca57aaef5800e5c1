import logging
import os
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from hpksessions.exceptions import SetupError

DEFAULT_DATABASE_NAME = "multi-tenant"
DEFAULT_CONTAINER_NAME = "user-sessions"
DEFAULT_THROUGHPUT = 400


def create_logger(name: str) -> logging.Logger:
    """
    ロガーを作成するファクトリー関数

    Args:
        name (str): ロガーの名前（通常は__name__を使用）

    Returns:
        logging.Logger: 設定済みのロガーインスタンス
    """
    logger = logging.getLogger(name)
    logger.propagate = False

    if not logger.handlers:  # 既にハンドラーが設定されている場合は追加しない
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


logger = create_logger(__name__)


def _int_env(key: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.error("環境変数 %s は整数で指定してください: %r", key, value)
        raise SetupError(f"環境変数 {key} は整数で指定してください") from None


def _float_env(key: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(key)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.error("環境変数 %s は数値で指定してください: %r", key, value)
        raise SetupError(f"環境変数 {key} は数値で指定してください") from None


class CosmosSettings(BaseModel):
    """Cosmos DB 接続設定"""

    endpoint: str
    account_key: Optional[str] = None
    database_name: str = DEFAULT_DATABASE_NAME
    container_name: str = DEFAULT_CONTAINER_NAME
    throughput: int = Field(default=DEFAULT_THROUGHPUT, gt=0)
    connection_verify: bool | str = True
    retry_total: int = Field(default=3, ge=0)
    retry_backoff_max: float = Field(default=10.0, ge=0)
    request_timeout: Optional[float] = Field(default=None, gt=0)

    @field_validator("connection_verify", mode="before")
    @classmethod
    def _parse_connection_verify(cls, value):
        """TLS証明書検証設定を解決する。

        - 未設定/空文字: True（検証ON）
        - true/false(0/1/yes/no 含む): bool
        - それ以外の文字列: CA証明書バンドルへのパス（エミュレーター用）
        """
        if value is None or value == "":
            return True
        if not isinstance(value, str):
            return value
        lowered = value.strip().lower()
        if lowered in {"false", "0", "no"}:
            return False
        if lowered in {"true", "1", "yes"}:
            return True
        return value

    @classmethod
    def from_env(cls, **overrides) -> "CosmosSettings":
        """環境変数から設定を組み立てる。None でない overrides（CLI引数）が優先される。"""
        values = {
            "endpoint": os.getenv("COSMOS_DB_ENDPOINT"),
            "account_key": os.getenv("COSMOS_DB_ACCOUNT_KEY") or None,
            "database_name": os.getenv("COSMOS_DB_DATABASE_NAME") or DEFAULT_DATABASE_NAME,
            "container_name": os.getenv("COSMOS_DB_CONTAINER_NAME") or DEFAULT_CONTAINER_NAME,
            "throughput": _int_env("COSMOS_DB_THROUGHPUT", DEFAULT_THROUGHPUT),
            "connection_verify": os.getenv("COSMOS_DB_CONNECTION_VERIFY"),
            "retry_total": _int_env("COSMOS_DB_RETRY_TOTAL", 3),
            "retry_backoff_max": _float_env("COSMOS_DB_RETRY_BACKOFF_MAX", 10.0),
            "request_timeout": _float_env("COSMOS_DB_REQUEST_TIMEOUT", None),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})

        if not values["endpoint"]:
            logger.error("環境変数 COSMOS_DB_ENDPOINT が設定されていません")
            raise SetupError("COSMOS_DB_ENDPOINT is not set")
        try:
            return cls(**values)
        except ValidationError as e:
            logger.error(f"Cosmos DB の設定値が不正です: {e}")
            raise SetupError(f"Invalid Cosmos DB settings: {e}") from e
