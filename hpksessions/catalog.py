"""テナントプロファイルの静的カタログ。

ユーザー数 10〜10000、ユーザーあたりセッション数 5〜100 の幅を持たせ、
マルチテナント環境のカーディナリティの偏りを再現する。
"""

import random
from typing import Optional, Tuple

from hpksessions.database.models import TenantProfile

TENANT_PROFILES: Tuple[TenantProfile, ...] = (
    TenantProfile(name="Enterprise-Corp", user_count_min=5000, user_count_max=10000, sessions_per_user=100),
    TenantProfile(name="MidMarket-Inc", user_count_min=500, user_count_max=1000, sessions_per_user=50),
    TenantProfile(name="SmallBiz-LLC", user_count_min=50, user_count_max=100, sessions_per_user=20),
    TenantProfile(name="LocalShops-SME", user_count_min=10, user_count_max=50, sessions_per_user=5),
    TenantProfile(name="Startup-Hub", user_count_min=10, user_count_max=200, sessions_per_user=10),
)


class TenantCatalog:
    def __init__(self, profiles: Tuple[TenantProfile, ...] = TENANT_PROFILES):
        if not profiles:
            raise ValueError("catalog requires at least one tenant profile")
        self._profiles = tuple(profiles)

    @property
    def profiles(self) -> Tuple[TenantProfile, ...]:
        return self._profiles

    def choose(self, rng: Optional[random.Random] = None) -> TenantProfile:
        """プロファイルを一様ランダムに1件選ぶ"""
        return (rng or random).choice(self._profiles)

    def get(self, name: str) -> TenantProfile:
        for profile in self._profiles:
            if profile.name == name:
                return profile
        raise KeyError(name)

    def __len__(self) -> int:
        return len(self._profiles)
