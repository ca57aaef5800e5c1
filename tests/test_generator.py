"""TenantCatalog と SessionGenerator のテスト"""

import re
from datetime import timedelta

import pytest
from pydantic import ValidationError

from hpksessions.catalog import TENANT_PROFILES, TenantCatalog
from hpksessions.database.models import TenantProfile
from hpksessions.generator import ACTIVITIES, SessionGenerator

from conftest import FIXED_NOW


def test_catalog_spans_cardinality_range():
    """カタログがユーザー数 10〜10000、セッション数 5〜100 の幅を持つことを確認"""
    assert min(p.user_count_min for p in TENANT_PROFILES) == 10
    assert max(p.user_count_max for p in TENANT_PROFILES) == 10000
    assert min(p.sessions_per_user for p in TENANT_PROFILES) == 5
    assert max(p.sessions_per_user for p in TENANT_PROFILES) == 100
    for profile in TENANT_PROFILES:
        assert 0 < profile.user_count_min <= profile.user_count_max


def test_catalog_get_and_unknown_name():
    catalog = TenantCatalog()

    assert catalog.get("Enterprise-Corp").user_count_max == 10000
    with pytest.raises(KeyError):
        catalog.get("Unknown-Tenant")


def test_tenant_profile_rejects_inverted_range():
    """user_count_min > user_count_max のプロファイルは作成できないことを確認"""
    with pytest.raises(ValidationError):
        TenantProfile(name="Broken", user_count_min=20, user_count_max=10, sessions_per_user=1)


def test_tenant_profile_rejects_empty_name():
    """空のテナント名は tenantId が空のセッションを生むため拒否されることを確認"""
    with pytest.raises(ValidationError):
        TenantProfile(name="", user_count_min=1, user_count_max=10, sessions_per_user=1)


def test_user_id_within_tenant_range(generator):
    """userId の数値が選ばれたテナントの範囲内に収まることを確認"""
    catalog = generator.catalog
    for session in generator.iter_sessions(500):
        profile = catalog.get(session.tenant_id)
        number = int(session.user_id.removeprefix("user-"))
        assert profile.user_count_min <= number <= profile.user_count_max


def test_timestamp_within_trailing_window(generator):
    """timestamp が直近30日以内に収まることを確認"""
    for session in generator.iter_sessions(500):
        assert FIXED_NOW - timedelta(days=30) <= session.timestamp <= FIXED_NOW


def test_session_shape(generator):
    session = generator.generate()

    assert re.fullmatch(r"session-[0-9a-f]{8}", session.session_id)
    assert session.activity in ACTIVITIES
    assert session.id not in (session.tenant_id, session.user_id, session.session_id)


def test_ids_are_unique(generator):
    ids = {session.id for session in generator.iter_sessions(200)}

    assert len(ids) == 200


def test_all_tenants_are_selected(generator):
    """一様ランダムで全テナントが選ばれることを確認"""
    tenants = {session.tenant_id for session in generator.iter_sessions(500)}

    assert tenants == {profile.name for profile in TENANT_PROFILES}


def test_vocabulary_size():
    assert len(ACTIVITIES) == 15
    assert len(set(ACTIVITIES)) == 15


def test_default_generator_uses_current_time():
    session = SessionGenerator().generate()

    assert session.timestamp.tzinfo is not None
