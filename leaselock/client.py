import logging
import time
from contextlib import contextmanager

from .consistency import check_consistency_level
from .exceptions import (
    AlreadyExists,
    InvalidArgument,
    LockReleased,
    LockUnavailable,
    NotFound,
    VersionMismatch,
)
from .handle import LockHandle, now
from .options import AcquireOptions
from .renewal import AutoRenewer

logger = logging.getLogger(__name__)

_NOT_NONE = "{0} must be non-null."


class LockClient:
    """
    Distributed locks on top of a strongly consistent keyed store.

    A lock is held while its item exists in the store. Acquire creates the
    item with the lease duration as its TTL, renew rewrites it (restarting the
    TTL) and release deletes it. Every write after the create is conditional
    on the version token returned by the previous one, so a handle whose lease
    lapsed and was taken by someone else can no longer touch the item.

    Usage:
        client = LockClient(store)
        lock = client.acquire(AcquireOptions("jobs", "nightly", timeout_ms=5000))
        try:
            # critical section
            pass
        finally:
            client.release(lock)
    """

    def __init__(self, store):
        if store is None:
            raise InvalidArgument("store", _NOT_NONE)
        # Stores don't let a client pick a stronger level than the account
        # has, so the best we can do is refuse to run on a weaker one.
        check_consistency_level(store)
        self._store = store

    def acquire(self, options: AcquireOptions) -> LockHandle:
        """
        Acquire the lock described by `options`, retrying every
        `retry_wait_ms` until `timeout_ms` has passed.

        Returns:
            the LockHandle of the acquired lock
        Raises:
            InvalidArgument: if `options` is malformed
            LockUnavailable: if the lock is still held by someone else at timeout
        """
        if options is None:
            raise InvalidArgument("options", _NOT_NONE)
        options.validate()

        logger.info(
            "Attempting to acquire lock '%s/%s' (lease=%ss, timeout=%sms)",
            options.shard_key, options.name, options.lease_duration, options.timeout_ms,
        )
        start = now()
        attempts = 0
        last_conflict = None
        while True:
            attempts += 1
            try:
                lock = self._try_acquire_once(options)
            except AlreadyExists as e:
                last_conflict = e
            else:
                if options.auto_renew:
                    self._start_auto_renew(lock)
                logger.info(
                    "Lock '%s/%s' acquired after %d attempt(s)",
                    lock.shard_key, lock.name, attempts,
                )
                return lock

            elapsed_ms = (now() - start) * 1000
            if elapsed_ms < options.timeout_ms:
                logger.debug(
                    "Lock '%s/%s' is held; retrying in %sms",
                    options.shard_key, options.name, options.retry_wait_ms,
                )
                time.sleep(options.retry_wait_ms / 1000.0)
            else:
                break

        logger.error(
            "Lock '%s/%s' unavailable after %d attempt(s) in %.0fms",
            options.shard_key, options.name, attempts, elapsed_ms,
        )
        raise LockUnavailable(options.shard_key, options.name, last_conflict) from last_conflict

    def renew(self, lock: LockHandle) -> None:
        """
        Restart the lease on `lock`.

        Raises:
            LockReleased: if the lock was released or its lease lapsed by the
                local clock, or the store no longer has it under our version
        """
        if lock is None:
            raise InvalidArgument("lock", _NOT_NONE)
        # A lapsed handle stays lapsed, even if the store hasn't expired the item yet.
        if not lock.is_acquired:
            raise LockReleased(lock.shard_key, lock.name)

        renewed_at = now()
        try:
            version = self._store.replace(
                lock.key, lock.to_document(), lock.lease_duration, lock.version_token
            )
        except (NotFound, VersionMismatch) as e:
            raise LockReleased(lock.shard_key, lock.name) from e

        lock.version_token = version
        lock.acquired_at = renewed_at

    def release(self, lock: LockHandle) -> None:
        """
        Release `lock`. Releasing a lock that already expired or was already
        released is a no-op.
        """
        if lock is None:
            raise InvalidArgument("lock", _NOT_NONE)

        # Stop auto-renew before the delete so no renew can race it.
        renewer = lock.renewer
        if renewer is not None:
            renewer.stop()
            lock.renewer = None

        try:
            self._store.delete(lock.key, lock.version_token)
            logger.info("Lock '%s/%s' released", lock.shard_key, lock.name)
        except (NotFound, VersionMismatch):
            logger.warning(
                "Lock '%s/%s' already released or expired", lock.shard_key, lock.name
            )
        lock.mark_released()

    @contextmanager
    def hold(self, options: AcquireOptions):
        """
        Context manager holding a lock for the duration of the block.

        Usage:
            try:
                with client.hold(AcquireOptions("jobs", "nightly", auto_renew=True)) as lock:
                    # critical section
                    pass
            except LockUnavailable:
                # lock acquisition failed
                pass
        """
        lock = self.acquire(options)
        try:
            yield lock
        finally:
            try:
                self.release(lock)
            except Exception as e:
                # the store's TTL reclaims the item
                logger.error("Error releasing lock '%s/%s': %s", lock.shard_key, lock.name, e)

    def _try_acquire_once(self, options: AcquireOptions) -> LockHandle:
        lock = LockHandle(options.shard_key, options.name, options.lease_duration)
        acquired_at = now()
        lock.version_token = self._store.create(lock.key, lock.to_document(), lock.lease_duration)
        lock.acquired_at = acquired_at
        return lock

    def _start_auto_renew(self, lock: LockHandle) -> None:
        lock.renewer = AutoRenewer(self.renew, lock)
        lock.renewer.start()
