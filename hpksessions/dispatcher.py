"""保持しているキーセグメントに応じたクエリパターンの選択と実行。

効率の高い順:
    1. PointRead          : tenant + user + session + id → 単一パーティションの単一アイテム
    2. FullKeyQuery       : tenant + user + session      → 単一パーティション内のフィルタ
    3. TenantAndUserQuery : tenant + user                → キープレフィックス配下のパーティション群
    4. SingleFieldQuery   : 3フィールドのうち1つだけ      → パーティション横断のファンアウト
キーを1つも持たない問い合わせはサポートしない。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Union

from hpksessions.database.interfaces import BaseStore
from hpksessions.database.keys import PartitionKeyBuilder
from hpksessions.database.models import QueryResult, UserSession
from hpksessions.exceptions import DecodingError, InvalidQueryRequest, PointReadError
from hpksessions.utils.config import create_logger

logger = create_logger(__name__)


class SessionField(str, Enum):
    """単一フィールドクエリで指定できるパーティションキーのフィールド"""

    TENANT_ID = "tenantId"
    USER_ID = "userId"
    SESSION_ID = "sessionId"

    @classmethod
    def parse(cls, name: Union[str, "SessionField"]) -> "SessionField":
        if isinstance(name, SessionField):
            return name
        for field in cls:
            if field.value == name:
                return field
        allowed = ", ".join(field.value for field in cls)
        raise InvalidQueryRequest(f"Invalid parameter type: {name!r} (allowed: {allowed})")


@dataclass(frozen=True)
class PointRead:
    item_id: str
    tenant_id: str
    user_id: str
    session_id: str


@dataclass(frozen=True)
class FullKeyQuery:
    tenant_id: str
    user_id: str
    session_id: str


@dataclass(frozen=True)
class TenantAndUserQuery:
    tenant_id: str
    user_id: str


@dataclass(frozen=True)
class SingleFieldQuery:
    field: SessionField
    value: str


QueryPattern = Union[PointRead, FullKeyQuery, TenantAndUserQuery, SingleFieldQuery]

FULL_KEY_QUERY = (
    "SELECT * FROM c WHERE c.tenantId = @tenantId AND c.userId = @userId AND c.sessionId = @sessionId"
)
TENANT_AND_USER_QUERY = "SELECT * FROM c WHERE c.tenantId = @tenantId AND c.userId = @userId"
SINGLE_FIELD_QUERY = "SELECT * FROM c WHERE c.{field} = @param"


def select_pattern(
    tenant_id: Optional[str] = None,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    item_id: Optional[str] = None,
) -> QueryPattern:
    """保持しているセグメントから最も効率の良いクエリパターンを選ぶ"""
    known = {
        SessionField.TENANT_ID: tenant_id,
        SessionField.USER_ID: user_id,
        SessionField.SESSION_ID: session_id,
    }
    present = [field for field, value in known.items() if value]

    if item_id:
        if len(present) != len(known):
            raise InvalidQueryRequest("point read requires tenantId, userId and sessionId together with the id")
        return PointRead(item_id=item_id, tenant_id=tenant_id, user_id=user_id, session_id=session_id)

    if len(present) == 3:
        return FullKeyQuery(tenant_id=tenant_id, user_id=user_id, session_id=session_id)
    if present == [SessionField.TENANT_ID, SessionField.USER_ID]:
        return TenantAndUserQuery(tenant_id=tenant_id, user_id=user_id)
    if len(present) == 1:
        field = present[0]
        return SingleFieldQuery(field=field, value=known[field])
    if not present:
        raise InvalidQueryRequest("at least one of tenantId, userId or sessionId is required")
    raise InvalidQueryRequest(
        f"unsupported key combination: {', '.join(field.value for field in present)} "
        "(partial keys must start at tenantId and be contiguous)"
    )


class QueryDispatcher:
    """クエリパターンをストアへの操作に変換して実行するクラス"""

    def __init__(self, store: BaseStore):
        self._store = store
        self.last_request_charge: float = 0.0

    def single_field(self, field_name: Union[str, SessionField], value: str) -> Iterator[QueryResult]:
        """フィールド名を検証したうえで単一フィールドクエリを実行する"""
        pattern = SingleFieldQuery(field=SessionField.parse(field_name), value=value)
        return self.dispatch(pattern)

    def dispatch(self, pattern: QueryPattern) -> Iterator[QueryResult]:
        """パターンを実行し、デコード済みレコードを遅延的に返す

        呼び出すたびにストアへ問い合わせ直す。PointRead 以外は、デコードに失敗したアイテムを
        エラー付きの QueryResult として返し、残りの処理を続ける。
        """
        if isinstance(pattern, PointRead):
            return self._point_read_results(pattern)
        if isinstance(pattern, FullKeyQuery):
            key = PartitionKeyBuilder.build([pattern.tenant_id, pattern.user_id, pattern.session_id])
            parameters = [
                {"name": "@tenantId", "value": pattern.tenant_id},
                {"name": "@userId", "value": pattern.user_id},
                {"name": "@sessionId", "value": pattern.session_id},
            ]
            return self._run_query(key, FULL_KEY_QUERY, parameters)
        if isinstance(pattern, TenantAndUserQuery):
            key = PartitionKeyBuilder.build([pattern.tenant_id, pattern.user_id])
            parameters = [
                {"name": "@tenantId", "value": pattern.tenant_id},
                {"name": "@userId", "value": pattern.user_id},
            ]
            return self._run_query(key, TENANT_AND_USER_QUERY, parameters)
        if isinstance(pattern, SingleFieldQuery):
            field = SessionField.parse(pattern.field)
            if not pattern.value:
                raise InvalidQueryRequest(f"value for {field.value} must be a non-empty string")
            query = SINGLE_FIELD_QUERY.format(field=field.value)
            return self._run_query(None, query, [{"name": "@param", "value": pattern.value}])
        raise InvalidQueryRequest(f"Unsupported query pattern: {type(pattern).__name__}")

    def _run_query(self, key_scope, query: str, parameters) -> Iterator[QueryResult]:
        scope = str(key_scope) if key_scope is not None else "<cross-partition>"
        logger.info("Querying %s with partition key scope: %s", query, scope)

        for page in self._store.query(key_scope, query, parameters):
            self.last_request_charge = page.request_charge
            for document in page.items:
                try:
                    session = UserSession.from_document(document)
                except DecodingError as e:
                    logger.warning(f"ドキュメントのデコードに失敗しました (id={e.record_id}): {e}")
                    yield QueryResult(error=e, request_charge=page.request_charge)
                    continue
                yield QueryResult(session=session, request_charge=page.request_charge)

    def _point_read_results(self, pattern: PointRead) -> Iterator[QueryResult]:
        session = self.point_read(pattern.item_id, pattern.tenant_id, pattern.user_id, pattern.session_id)
        yield QueryResult(session=session, request_charge=self.last_request_charge)

    def point_read(self, item_id: str, tenant_id: str, user_id: str, session_id: str) -> UserSession:
        """完全なパーティションキーと id によるポイントリード。失敗は全て PointReadError。"""
        if not item_id:
            raise PointReadError("item id is required for a point read", item_id=item_id)
        try:
            key = PartitionKeyBuilder.build([tenant_id, user_id, session_id])
        except InvalidQueryRequest as e:
            raise PointReadError(f"invalid partition key for point read: {e}", item_id=item_id) from e

        document = self._store.point_read(key, item_id)
        self.last_request_charge = self._store.last_request_charge()

        try:
            session = UserSession.from_document(document)
        except DecodingError as e:
            raise PointReadError(f"Failed to decode item {item_id}: {e}", item_id=item_id, key=str(key)) from e

        if PartitionKeyBuilder.for_session(session) != key or session.id != item_id:
            raise PointReadError(f"Item {item_id} does not belong to partition {key}", item_id=item_id, key=str(key))

        logger.info("Point read %s in %s (RU: %s)", item_id, key, self.last_request_charge)
        return session
