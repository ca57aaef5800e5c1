"""階層パーティションキー（tenantId → userId → sessionId）を使ったマルチテナントのセッションストア。"""

from hpksessions.catalog import TenantCatalog
from hpksessions.database.keys import HierarchicalKey, PartitionKeyBuilder
from hpksessions.database.models import LoadReport, TenantProfile, UserSession
from hpksessions.dispatcher import QueryDispatcher, SessionField, select_pattern
from hpksessions.generator import SessionGenerator
from hpksessions.loader import RecordLoader

__all__ = [
    "HierarchicalKey",
    "LoadReport",
    "PartitionKeyBuilder",
    "QueryDispatcher",
    "RecordLoader",
    "SessionField",
    "SessionGenerator",
    "TenantCatalog",
    "TenantProfile",
    "UserSession",
    "select_pattern",
]
