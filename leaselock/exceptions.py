"""
Errors raised by the lock client and by Store Adapters.

Store Adapters translate whatever their transport raises into StoreError
subclasses, so the client only ever branches on these kinds.
"""


class LockError(Exception):
    """Base class for errors raised by the lock client."""


class InvalidArgument(LockError, ValueError):
    """Raised for malformed input. Never retried."""

    def __init__(self, field: str, message: str):
        super().__init__(message.format(field))
        self.field = field


class ConsistencyViolation(LockError):
    """Raised at client construction when the store is not strongly consistent."""

    def __init__(self, level):
        level_name = getattr(level, "value", level)
        super().__init__(
            f'A consistency level of "{level_name}" is not supported.  Use consistency level Strong.'
        )
        self.level = level


class LockUnavailable(LockError):
    """
    Raised when a lock could not be acquired before the timeout.

    `last_conflict` holds the store error from the final attempt.
    """

    def __init__(self, shard_key: str, name: str, last_conflict=None):
        super().__init__(
            f'The lock with partition key: "{shard_key}" and name: "{name}" is unavailable.'
        )
        self.shard_key = shard_key
        self.name = name
        self.last_conflict = last_conflict


class LockReleased(LockError):
    """Raised when a renew finds the lease expired or taken by someone else."""

    def __init__(self, shard_key: str, name: str):
        super().__init__(
            f'The lock with partition key: "{shard_key}" and name: "{name}" '
            "has been released/expired and no longer exists."
        )
        self.shard_key = shard_key
        self.name = name


class StoreError(Exception):
    """Base class for errors raised by a Store Adapter."""


class AlreadyExists(StoreError):
    """An unexpired item with the same key exists."""


class NotFound(StoreError):
    """No item exists under the key."""


class VersionMismatch(StoreError):
    """The stored version differs from the expected one."""


class ConsistencyLevelUnsupported(StoreError):
    """The client-side consistency level exceeds what the store account supports."""


class StoreFailure(StoreError):
    """Any other backing store error (transport, timeouts, server errors)."""
