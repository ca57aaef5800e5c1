import random
import uuid
from datetime import datetime, timedelta
from typing import Callable, Iterator, Optional

import pytz

from hpksessions.catalog import TenantCatalog
from hpksessions.database.models import UserSession

ACTIVITIES = (
    "login",
    "logout",
    "view_dashboard",
    "update_profile",
    "create_document",
    "edit_document",
    "delete_document",
    "share_document",
    "upload_file",
    "download_file",
    "search",
    "export_report",
    "invite_user",
    "change_settings",
    "view_billing",
)

WINDOW_DAYS = 30


def _utcnow() -> datetime:
    return datetime.now(pytz.utc)


class SessionGenerator:
    """TenantCatalog の分布に沿った UserSession を生成するクラス

    生成はステートレスで、過去に生成したレコードに依存しない。
    """

    def __init__(
        self,
        catalog: Optional[TenantCatalog] = None,
        rng: Optional[random.Random] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            catalog: テナントカタログ（省略時は既定のプロファイル）
            rng: 乱数生成器。シードを固定すると再現可能な分布になる
            now: 現在時刻を返す関数（テスト用に差し替え可能）
        """
        self.catalog = catalog or TenantCatalog()
        self._rng = rng or random.Random()
        self._now = now

    def _session_suffix(self) -> str:
        # キーセグメントのエントロピーを増やすだけなので衝突は許容する
        return uuid.UUID(int=self._rng.getrandbits(128), version=4).hex[:8]

    def _timestamp(self) -> datetime:
        offset = timedelta(
            days=self._rng.randint(0, WINDOW_DAYS - 1),
            hours=self._rng.randint(0, 23),
            minutes=self._rng.randint(0, 59),
        )
        return self._now() - offset

    def generate(self) -> UserSession:
        profile = self.catalog.choose(self._rng)
        user_number = self._rng.randint(profile.user_count_min, profile.user_count_max)
        return UserSession(
            id=str(uuid.uuid4()),
            tenant_id=profile.name,
            user_id=f"user-{user_number}",
            session_id=f"session-{self._session_suffix()}",
            activity=self._rng.choice(ACTIVITIES),
            timestamp=self._timestamp(),
        )

    def iter_sessions(self, count: int) -> Iterator[UserSession]:
        """count 件のセッションを遅延生成する"""
        for _ in range(count):
            yield self.generate()
