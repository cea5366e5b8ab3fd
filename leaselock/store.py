import threading
import time
import uuid
from collections import namedtuple
from typing import Dict, Optional, Protocol

from .consistency import ConsistencyLevel
from .exceptions import AlreadyExists, ConsistencyLevelUnsupported, NotFound, VersionMismatch

ItemKey = namedtuple("ItemKey", ["shard_key", "name"])


class StoreAdapter(Protocol):
    """
    Keyed store the lock client relies on.

    Guarantees required from implementations:
    - create fails with AlreadyExists while an unexpired item has the key
    - replace/delete are conditional on the version token and fail with
      NotFound or VersionMismatch
    - an item disappears on its own `ttl` seconds after its last create/replace
    - transport errors surface as StoreFailure, never raw
    """

    client_consistency_level: Optional[ConsistencyLevel]

    def create(self, key: ItemKey, document: dict, ttl: int) -> str:
        ...

    def replace(self, key: ItemKey, document: dict, ttl: int, expected_version: str) -> str:
        ...

    def delete(self, key: ItemKey, expected_version: str) -> None:
        ...

    def query_consistency_level(self) -> ConsistencyLevel:
        ...


class _Item:
    __slots__ = ("document", "version", "ttl", "written_at")

    def __init__(self, document: dict, version: str, ttl: int, written_at: float):
        self.document = document
        self.version = version
        self.ttl = ttl
        self.written_at = written_at


class InMemoryStore:
    """
    Process-local reference implementation.

    Used for:
    - Tests
    - Local experiments

    NOT for production: nothing is shared between processes.

    Items expire lazily, checked on every access. The counters and the
    `fail_on_*` hooks exist so tests can observe and break the store.
    """

    def __init__(
        self,
        account_consistency_level: ConsistencyLevel = ConsistencyLevel.STRONG,
        client_consistency_level: Optional[ConsistencyLevel] = None,
    ):
        self.account_consistency_level = account_consistency_level
        self.client_consistency_level = client_consistency_level
        self.create_calls = 0
        self.replace_calls = 0
        self.delete_calls = 0
        self.fail_on_replace: Optional[BaseException] = None
        self.fail_on_delete: Optional[BaseException] = None
        self._items: Dict[ItemKey, _Item] = {}
        self._lock = threading.Lock()

    def create(self, key: ItemKey, document: dict, ttl: int) -> str:
        with self._lock:
            self.create_calls += 1
            self._expire(key)
            if key in self._items:
                raise AlreadyExists(f"Item {key} already exists")
            version = str(uuid.uuid4())
            self._items[key] = _Item(dict(document), version, ttl, time.time())
            return version

    def replace(self, key: ItemKey, document: dict, ttl: int, expected_version: str) -> str:
        with self._lock:
            self.replace_calls += 1
            if self.fail_on_replace is not None:
                raise self.fail_on_replace
            item = self._current(key, expected_version)
            item.document = dict(document)
            item.version = str(uuid.uuid4())
            item.ttl = ttl
            item.written_at = time.time()
            return item.version

    def delete(self, key: ItemKey, expected_version: str) -> None:
        with self._lock:
            self.delete_calls += 1
            if self.fail_on_delete is not None:
                raise self.fail_on_delete
            self._current(key, expected_version)
            del self._items[key]

    def query_consistency_level(self) -> ConsistencyLevel:
        level = self.client_consistency_level
        if level is not None and level.is_stronger_than(self.account_consistency_level):
            raise ConsistencyLevelUnsupported(
                f"Client level {level.value} exceeds account level "
                f"{self.account_consistency_level.value}"
            )
        return self.account_consistency_level

    def contains(self, key: ItemKey) -> bool:
        with self._lock:
            self._expire(key)
            return key in self._items

    def _current(self, key: ItemKey, expected_version: str) -> _Item:
        self._expire(key)
        item = self._items.get(key)
        if item is None:
            raise NotFound(f"Item {key} does not exist")
        if not expected_version or item.version != expected_version:
            raise VersionMismatch(f"Item {key} has a different version")
        return item

    def _expire(self, key: ItemKey) -> None:
        item = self._items.get(key)
        if item is not None and time.time() - item.written_at >= item.ttl:
            del self._items[key]
