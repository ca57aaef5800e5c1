from typing import Any, Dict, Iterator, List, Optional, Sequence

from azure.core.exceptions import AzureError
from azure.cosmos import ContainerProxy, CosmosClient, PartitionKey, exceptions
from azure.identity import DefaultAzureCredential

from hpksessions.database.interfaces import BaseStore
from hpksessions.database.keys import HIERARCHY_PATHS, HierarchicalKey
from hpksessions.database.models import QueryPage
from hpksessions.exceptions import ContainerSchemaMismatch, PointReadError, SetupError, StoreError, WriteError
from hpksessions.utils.config import CosmosSettings, create_logger

logger = create_logger(__name__)

REQUEST_CHARGE_HEADER = "x-ms-request-charge"
KEY_FIELDS = ("tenantId", "userId", "sessionId")


def create_cosmos_client(settings: CosmosSettings) -> CosmosClient:
    """CosmosDBクライアントの初期化

    アカウントキーが未設定の場合は DefaultAzureCredential（Azure CLI / マネージドID 等）を使う。
    一時的なエラー（429, 408, 503, 接続エラー）は SDK のリトライポリシーで retry_total 回まで再試行する。
    """
    try:
        credential = settings.account_key or DefaultAzureCredential()
        client = CosmosClient(
            url=settings.endpoint,
            credential=credential,
            connection_verify=settings.connection_verify,
            retry_total=settings.retry_total,
            retry_backoff_max=settings.retry_backoff_max,
        )
    except (AzureError, ValueError, TypeError) as e:
        logger.error(f"CosmosDBクライアントの作成に失敗しました: {e}")
        raise SetupError(f"Failed to create Cosmos DB client: {e}") from e

    logger.info("CosmosDBクライアントを作成しました: %s", settings.endpoint)
    return client


class CosmosCore:
    """データベースとコンテナのプロビジョニングを行うクラス"""

    def __init__(self, client: CosmosClient, database_name: str, request_timeout: Optional[float] = None):
        """
        Args:
            client: 共有する CosmosClient
            database_name: データベース名
            request_timeout: 各操作のタイムアウト秒数（None の場合は SDK の既定値）
        """
        self._client = client
        self._database_name = database_name
        self._request_timeout = request_timeout

    def ensure_container(
        self,
        name: str,
        key_paths: Sequence[str] = HIERARCHY_PATHS,
        throughput: Optional[int] = None,
    ) -> "CosmosContainer":
        """階層パーティションキーのコンテナを作成する（既に存在する場合はそのまま使う）

        既存コンテナのパーティションキー定義が key_paths と異なる場合は ContainerSchemaMismatch を送出する。
        """
        if not 1 <= len(key_paths) <= len(HIERARCHY_PATHS):
            raise SetupError(f"key_paths must have 1 to {len(HIERARCHY_PATHS)} entries")

        expected_paths = list(key_paths)
        try:
            database = self._client.create_database_if_not_exists(id=self._database_name)
            container = database.create_container_if_not_exists(
                id=name,
                partition_key=PartitionKey(path=expected_paths, kind="MultiHash"),
                offer_throughput=throughput,
            )
            properties = container.read()
        except (exceptions.CosmosHttpResponseError, AzureError) as e:
            # 認証エラー（ClientAuthenticationError）や接続エラーも最初の呼び出しでここに来る
            logger.error(f"データベースまたはコンテナの作成に失敗しました: {e}")
            raise SetupError(f"Failed to provision {self._database_name}/{name}: {e}") from e

        actual_paths = list(properties.get("partitionKey", {}).get("paths", []))
        if actual_paths != expected_paths:
            logger.error("コンテナ %s のパーティションキー定義が一致しません: %s != %s", name, actual_paths, expected_paths)
            raise ContainerSchemaMismatch(name, expected_paths, actual_paths)

        logger.info("%s/%s コンテナの準備が完了しました。(partition key: %s)", self._database_name, name, expected_paths)
        return CosmosContainer(container, request_timeout=self._request_timeout)

    def get_container(self, name: str) -> "CosmosContainer":
        """既存のコンテナを作成せずに取得する"""
        database = self._client.get_database_client(self._database_name)
        return CosmosContainer(database.get_container_client(name), request_timeout=self._request_timeout)


class CosmosContainer(BaseStore):
    """ContainerProxy を BaseStore として扱うためのラッパー"""

    def __init__(self, container: ContainerProxy, request_timeout: Optional[float] = None):
        self._container = container
        self._request_timeout = request_timeout

    @property
    def container(self) -> ContainerProxy:
        return self._container

    def _options(self) -> Dict[str, Any]:
        if self._request_timeout is None:
            return {}
        return {"timeout": self._request_timeout}

    def last_request_charge(self) -> float:
        """直前のリクエストの RU 消費量"""
        headers = self._container.client_connection.last_response_headers or {}
        try:
            return float(headers.get(REQUEST_CHARGE_HEADER, 0))
        except (TypeError, ValueError):
            return 0.0

    def upsert(self, key: HierarchicalKey, document: Dict[str, Any]) -> Dict[str, Any]:
        record_id = document.get("id")
        if not key.is_full:
            raise WriteError(f"upsert requires a full partition key, got {key}", record_id=record_id)
        document_key = [document.get(field) for field in KEY_FIELDS]
        if document_key != key.values:
            raise WriteError(f"document key {document_key} does not match partition key {key}", record_id=record_id)

        try:
            return self._container.upsert_item(body=document, **self._options())
        except (exceptions.CosmosHttpResponseError, AzureError) as e:
            raise WriteError(f"Failed to upsert item {record_id}: {e}", record_id=record_id) from e

    def point_read(self, key: HierarchicalKey, item_id: str) -> Dict[str, Any]:
        if not key.is_full:
            raise PointReadError(f"point read requires a full partition key, got {key}", item_id=item_id, key=str(key))

        try:
            return self._container.read_item(item=item_id, partition_key=key.values, **self._options())
        except exceptions.CosmosResourceNotFoundError as e:
            raise PointReadError(f"Item {item_id} not found in partition {key}", item_id=item_id, key=str(key)) from e
        except (exceptions.CosmosHttpResponseError, AzureError) as e:
            raise PointReadError(f"Failed to read item {item_id}: {e}", item_id=item_id, key=str(key)) from e

    def query(
        self, key_scope: Optional[HierarchicalKey], query: str, parameters: List[Dict[str, Any]]
    ) -> Iterator[QueryPage]:
        options = self._options()
        if key_scope is None:
            options["enable_cross_partition_query"] = True
        else:
            # 完全なキーは単一パーティション、プレフィックスはその配下のパーティション群に限定される
            options["partition_key"] = key_scope.values

        try:
            pager = self._container.query_items(query=query, parameters=parameters, **options).by_page()
            for page in pager:
                items = list(page)
                yield QueryPage(items=items, request_charge=self.last_request_charge())
        except (exceptions.CosmosHttpResponseError, AzureError) as e:
            logger.error(f"クエリの実行に失敗しました: {e}")
            raise StoreError(f"Query failed: {e}") from e
