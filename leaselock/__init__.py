"""
Distributed locks leased from a strongly consistent keyed store.

Public API surface for the leaselock package. The etcd adapter lives in
`leaselock.etcd_store` and is imported from there.
"""

from .client import LockClient
from .config import Settings, configure_logging
from .consistency import ConsistencyLevel, check_consistency_level
from .exceptions import (
    AlreadyExists,
    ConsistencyLevelUnsupported,
    ConsistencyViolation,
    InvalidArgument,
    LockError,
    LockReleased,
    LockUnavailable,
    NotFound,
    StoreError,
    StoreFailure,
    VersionMismatch,
)
from .handle import LockHandle
from .options import AcquireOptions
from .renewal import AutoRenewer
from .store import InMemoryStore, ItemKey, StoreAdapter

__all__ = [
    "LockClient",
    "LockHandle",
    "AcquireOptions",
    "AutoRenewer",
    "ConsistencyLevel",
    "check_consistency_level",
    "StoreAdapter",
    "InMemoryStore",
    "ItemKey",
    "Settings",
    "configure_logging",
    "LockError",
    "InvalidArgument",
    "ConsistencyViolation",
    "LockUnavailable",
    "LockReleased",
    "StoreError",
    "AlreadyExists",
    "NotFound",
    "VersionMismatch",
    "ConsistencyLevelUnsupported",
    "StoreFailure",
]

__version__ = "0.1.0"
