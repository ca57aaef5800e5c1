from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional

from hpksessions.database.keys import HierarchicalKey
from hpksessions.database.models import QueryPage


class BaseStore(ABC):
    """階層パーティションキーを持つコンテナへの操作"""

    @abstractmethod
    def upsert(self, key: HierarchicalKey, document: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def point_read(self, key: HierarchicalKey, item_id: str) -> Dict[str, Any]:
        pass

    def last_request_charge(self) -> float:
        """直前のリクエストのコスト（RU）。計測しないストアは 0"""
        return 0.0

    @abstractmethod
    def query(
        self, key_scope: Optional[HierarchicalKey], query: str, parameters: List[Dict[str, Any]]
    ) -> Iterator[QueryPage]:
        pass
