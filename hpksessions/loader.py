from typing import Iterable

from hpksessions.database.interfaces import BaseStore
from hpksessions.database.keys import PartitionKeyBuilder
from hpksessions.database.models import LoadReport, UserSession
from hpksessions.exceptions import BatchLoadError, EncodingError, RecordError
from hpksessions.generator import SessionGenerator
from hpksessions.utils.config import create_logger

logger = create_logger(__name__)

PROGRESS_INTERVAL = 10


def encode_session(session: UserSession) -> dict:
    """UserSession を保存用ドキュメントに変換する。失敗時は EncodingError。"""
    try:
        return session.to_document()
    except (ValueError, TypeError) as e:
        raise EncodingError(f"Failed to encode session {session.id}: {e}", record_id=session.id) from e


class RecordLoader:
    """生成したセッションを完全な階層キーで upsert するクラス

    upsert なので同じ id で再実行しても論理レコードは重複しない。
    1件の失敗でバッチを止めず、失敗件数を集計して最後に BatchLoadError として通知する。
    """

    def __init__(self, store: BaseStore, generator: SessionGenerator):
        self._store = store
        self._generator = generator

    def load(self, count: int) -> LoadReport:
        if count < 0:
            raise ValueError("count must be >= 0")
        logger.info(f"{count}件のセッションを生成してロードします。")
        return self.load_sessions(self._generator.iter_sessions(count), expected=count)

    def load_sessions(self, sessions: Iterable[UserSession], expected: int | None = None) -> LoadReport:
        report = LoadReport()

        for session in sessions:
            try:
                document = encode_session(session)
                key = PartitionKeyBuilder.for_session(session)
                self._store.upsert(key, document)
                report.succeeded += 1
            except RecordError as e:
                report.failed += 1
                logger.error(f"レコード {e.record_id or session.id} のロードに失敗しました: {e}")

            if report.total % PROGRESS_INTERVAL == 0:
                self._log_progress(report, expected)

        if report.total % PROGRESS_INTERVAL != 0:
            self._log_progress(report, expected)
        logger.info(f"ロード完了: 成功 {report.succeeded}件 / 失敗 {report.failed}件")

        if not report.ok:
            raise BatchLoadError(report)
        return report

    @staticmethod
    def _log_progress(report: LoadReport, expected: int | None) -> None:
        total = f"/{expected}" if expected is not None else ""
        logger.info(f"進捗: {report.total}{total}件 (成功 {report.succeeded}, 失敗 {report.failed})")
