from dataclasses import dataclass

from .exceptions import InvalidArgument

_NON_EMPTY = "{0} must have a non-empty, non-null value."
_NON_NEGATIVE = "{0} must be greater than or equal to zero."
_POSITIVE = "{0} must be greater than zero."


@dataclass
class AcquireOptions:
    """
    How a lock should be acquired.

    Parameters:
        shard_key (str): routing key used by the store to find the lock
        name (str): unique name of the lock within its shard
        lease_duration (int): lease TTL in seconds
        timeout_ms (int): total time to keep retrying; 0 tries once
        retry_wait_ms (int): pause between attempts
        auto_renew (bool): if True, renew the lease in the background until release
    """

    shard_key: str
    name: str
    lease_duration: int = 60
    timeout_ms: int = 0
    retry_wait_ms: int = 1000
    auto_renew: bool = False

    def validate(self) -> None:
        for field in ("shard_key", "name"):
            value = getattr(self, field)
            if not isinstance(value, str) or not value.strip():
                raise InvalidArgument(field, _NON_EMPTY)

        if not _is_int(self.lease_duration) or self.lease_duration <= 0:
            raise InvalidArgument("lease_duration", _POSITIVE)

        for field in ("timeout_ms", "retry_wait_ms"):
            value = getattr(self, field)
            if not _is_int(value) or value < 0:
                raise InvalidArgument(field, _NON_NEGATIVE)


def _is_int(value) -> bool:
    # bool is an int subclass but never a sensible duration
    return isinstance(value, int) and not isinstance(value, bool)
