"""hpksessions の例外定義モジュール。

ストアへの接続・プロビジョニング失敗（致命的）、レコード単位の失敗（集計して継続）、
ストアに送る前に弾くクエリ要求の不正、の3系統に分かれる。
"""

from typing import Optional


class HpkSessionsError(Exception):
    """hpksessions の全例外の基底クラス"""


class SetupError(HpkSessionsError):
    """認証情報・クライアント・データベース・コンテナの準備に失敗した場合の例外。

    データ操作の前に発生し、処理全体を中断する。
    """


class ContainerSchemaMismatch(SetupError):
    """既存コンテナのパーティションキー定義が要求と一致しない場合の例外"""

    def __init__(self, container_name: str, expected_paths: list[str], actual_paths: list[str]):
        self.container_name = container_name
        self.expected_paths = expected_paths
        self.actual_paths = actual_paths
        super().__init__(
            f"Container {container_name!r} exists with partition key paths {actual_paths}, "
            f"expected {expected_paths}"
        )


class StoreError(HpkSessionsError):
    """リトライ後もストアへのクエリが失敗した場合の例外"""


class RecordError(HpkSessionsError):
    """1レコードに閉じた失敗。バッチは中断しない。"""

    def __init__(self, message: str, record_id: Optional[str] = None):
        self.record_id = record_id
        super().__init__(message)


class EncodingError(RecordError):
    """レコードのシリアライズに失敗した場合の例外"""


class WriteError(RecordError):
    """レコードの upsert に失敗した場合の例外"""


class DecodingError(RecordError):
    """クエリ結果のドキュメントを UserSession に変換できなかった場合の例外"""


class InvalidQueryRequest(HpkSessionsError):
    """ストアに送る前に拒否されるクエリ要求（未対応フィールド、不連続なキーなど）"""


class InvalidPartitionKey(InvalidQueryRequest):
    """階層パーティションキーのセグメント数・並び・値が不正な場合の例外"""


class PointReadError(HpkSessionsError):
    """ポイントリードの失敗。部分的な結果は存在しないため、その操作全体が失敗となる。"""

    def __init__(self, message: str, item_id: str, key: Optional[str] = None):
        self.item_id = item_id
        self.key = key
        super().__init__(message)


class BatchLoadError(HpkSessionsError):
    """1件以上のレコードが失敗したバッチの集計例外。成功件数は report から参照できる。"""

    def __init__(self, report):
        self.report = report
        super().__init__(f"{report.failed} of {report.total} records failed ({report.succeeded} succeeded)")
