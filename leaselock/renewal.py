import logging
import threading

from .handle import now

logger = logging.getLogger(__name__)

# Floor for the delay between ticks so a slow renew never busy-loops.
MIN_INTERVAL = 0.1


class AutoRenewer:
    """
    Background thread that keeps one lock's lease alive.

    Ticks every lease_duration / 3 seconds, less the time the previous renew
    took. A failed renew does not stop the thread; the next tick stops it once
    the lock's local TTL shows the lease has lapsed. `stop()` blocks until the
    thread has exited, so no renew is in flight afterwards.
    """

    def __init__(self, renew, lock):
        self._renew = renew
        self._lock = lock
        self._period = lock.lease_duration / 3.0
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name=f"leaselock-renew-{lock.shard_key}/{lock.name}",
            daemon=True,
        )
        self.renew_count = 0
        self.failure_count = 0

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        logger.debug(
            "Starting auto-renew for lock '%s/%s' every %.2fs",
            self._lock.shard_key, self._lock.name, self._period,
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join()

    def _run(self) -> None:
        lock = self._lock
        interval = self._period
        while not self._stop_event.wait(interval):
            start = now()
            if not lock.is_acquired:
                logger.info(
                    "Lease on lock '%s/%s' lapsed; stopping auto-renew",
                    lock.shard_key, lock.name,
                )
                if lock.renewer is self:
                    lock.renewer = None
                self._stop_event.set()
                return

            try:
                self._renew(lock)
                self.renew_count += 1
                logger.debug("Lock '%s/%s' renewed", lock.shard_key, lock.name)
            except Exception as e:
                # retried on the next tick
                self.failure_count += 1
                logger.warning("Error renewing lock '%s/%s': %s", lock.shard_key, lock.name, e)

            elapsed = now() - start
            interval = max(MIN_INTERVAL, self._period - elapsed)
