import time
from typing import Optional

from .store import ItemKey


def now() -> float:
    """
    The one wall-clock source for lease timestamps (epoch seconds).
    """
    return time.time()


class LockHandle:
    """
    Client-side view of one lease on a named lock.

    Only LockClient creates handles. `is_acquired` is a local estimate based on
    this machine's clock; the store's TTL is what actually ends the lease, and
    no compensation for clock skew between the two is attempted.

    Attributes:
        shard_key (str): routing key of the lock item
        name (str): unique lock name within the shard, also the item id
        lease_duration (int): lease TTL in seconds
        version_token (str): store concurrency token of the last successful write
        acquired_at (float): local time of the last successful create/renew
        released (bool): set once the lock was released; never reset
        renewer (AutoRenewer): background renewer, when auto-renew is on
    """

    def __init__(self, shard_key: str, name: str, lease_duration: int):
        self.shard_key = shard_key
        self.name = name
        self.lease_duration = lease_duration
        self.version_token: Optional[str] = None
        self.acquired_at: Optional[float] = None
        self.released = False
        self.renewer = None

    @property
    def key(self) -> ItemKey:
        return ItemKey(self.shard_key, self.name)

    @property
    def is_acquired(self) -> bool:
        if self.released or self.acquired_at is None:
            return False
        return (now() - self.acquired_at) < self.lease_duration

    @property
    def ttl_remaining(self) -> float:
        """
        Seconds left on the lease by the local clock, 0.0 once it has lapsed.
        """
        if not self.is_acquired:
            return 0.0
        return max(0.0, self.lease_duration - (now() - self.acquired_at))

    def mark_released(self) -> None:
        self.released = True

    def to_document(self) -> dict:
        return {
            "id": self.name,
            "partitionKey": self.shard_key,
            "ttl": self.lease_duration,
        }

    def __repr__(self) -> str:
        return (
            f"LockHandle(shard_key={self.shard_key!r}, name={self.name!r}, "
            f"lease_duration={self.lease_duration}, acquired={self.is_acquired})"
        )
