"""階層パーティションキーの組み立て。

キーはカーディナリティ順（tenantId → userId → sessionId）に上位から連続して
指定する必要がある。上位が揃ったプレフィックスはストアが効率よく解決できるが、
途中を飛ばした組み合わせ（tenant + session など）は解決できない。
"""

from typing import List, Optional, Sequence, Tuple

from hpksessions.database.models import UserSession
from hpksessions.exceptions import InvalidPartitionKey

# コンテナ作成時の階層パーティションキーのパス（レベル1から順）
HIERARCHY_PATHS: Tuple[str, ...] = ("/tenantId", "/userId", "/sessionId")
MAX_DEPTH = len(HIERARCHY_PATHS)
SEPARATOR = "/"


class HierarchicalKey:
    """1〜3個のセグメントからなる階層パーティションキー"""

    __slots__ = ("_segments",)

    def __init__(self, segments: Sequence[str]):
        self._segments = tuple(segments)

    @property
    def segments(self) -> Tuple[str, ...]:
        return self._segments

    @property
    def values(self) -> List[str]:
        """azure-cosmos の partition_key 引数にそのまま渡せる形式"""
        return list(self._segments)

    @property
    def depth(self) -> int:
        return len(self._segments)

    @property
    def is_full(self) -> bool:
        return self.depth == MAX_DEPTH

    def is_prefix_of(self, other: "HierarchicalKey") -> bool:
        return self.depth <= other.depth and other.segments[: self.depth] == self._segments

    def __str__(self) -> str:
        return SEPARATOR.join(self._segments)

    def __repr__(self) -> str:
        return f"HierarchicalKey({list(self._segments)!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, HierarchicalKey):
            return NotImplemented
        return self._segments == other._segments

    def __hash__(self) -> int:
        return hash(self._segments)


class PartitionKeyBuilder:
    """HierarchicalKey を組み立てるビルダー

    build() が検証するのはセグメント数と空文字のみ。並びの連続性は呼び出し側の責務で、
    名前付きの任意セグメントから組み立てる場合は from_fields() が欠落を検出する。
    """

    @staticmethod
    def build(segments: Sequence[str]) -> HierarchicalKey:
        if isinstance(segments, str):
            raise InvalidPartitionKey("segments must be a sequence of strings, not a single string")
        if not 1 <= len(segments) <= MAX_DEPTH:
            raise InvalidPartitionKey(f"partition key must have 1 to {MAX_DEPTH} segments, got {len(segments)}")
        for level, segment in enumerate(segments, start=1):
            if not isinstance(segment, str) or not segment:
                raise InvalidPartitionKey(f"segment at level {level} must be a non-empty string")
            if SEPARATOR in segment:
                # 文字列表現（ログ、PointReadError.key）が一意にならなくなる
                raise InvalidPartitionKey(f"segment at level {level} must not contain {SEPARATOR!r}: {segment!r}")
        return HierarchicalKey(segments)

    @classmethod
    def from_fields(
        cls,
        tenant_id: Optional[str] = None,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> HierarchicalKey:
        """既知のセグメントから上位連続のキーを組み立てる。途中の欠落は拒否する。"""
        fields = [tenant_id, user_id, session_id]
        known = [bool(value) for value in fields]
        if not any(known):
            raise InvalidPartitionKey("at least the tenant segment is required")

        depth = known.index(False) if False in known else MAX_DEPTH
        if any(known[depth:]):
            raise InvalidPartitionKey(f"non-contiguous partition key: {HIERARCHY_PATHS[depth]} is missing")
        return cls.build(fields[:depth])

    @classmethod
    def for_session(cls, session: UserSession) -> HierarchicalKey:
        return cls.build([session.tenant_id, session.user_id, session.session_id])
