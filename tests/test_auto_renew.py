import threading
import time

from leaselock import AutoRenewer, StoreFailure
from leaselock.handle import LockHandle


def test_renew_never_called(client, store, make_options):
    client.acquire(make_options(auto_renew=False, lease_duration=2))
    time.sleep(2)
    assert store.replace_calls == 0


def test_renew_called(client, store, make_options):
    lock = client.acquire(make_options(auto_renew=True, lease_duration=2))
    assert lock.renewer is not None and lock.renewer.running
    time.sleep(4)
    # ticks roughly every 2/3s
    assert 5 <= store.replace_calls <= 6
    assert lock.is_acquired
    assert store.contains(lock.key)
    client.release(lock)


def test_elapses_on_exceptions(client, store, make_options):
    store.fail_on_replace = StoreFailure("unavailable")
    lock = client.acquire(make_options(auto_renew=True, lease_duration=1))
    renewer = lock.renewer
    time.sleep(1.5)
    # two failed renewals, then the lapsed TTL stops the thread
    assert store.replace_calls in (2, 3)
    assert not lock.is_acquired
    assert renewer.failure_count == store.replace_calls
    assert not renewer.running
    assert lock.renewer is None
    count = store.replace_calls
    time.sleep(1)
    assert store.replace_calls == count


def test_timer_stopped_after_release(client, store, make_options):
    lock = client.acquire(make_options(auto_renew=True, lease_duration=1))
    renewer = lock.renewer
    time.sleep(1)
    assert store.replace_calls >= 2
    client.release(lock)
    assert lock.renewer is None
    assert not renewer.running
    count = store.replace_calls
    time.sleep(1)
    assert store.replace_calls == count


def test_lock_lost_to_other_holder_stops_renewer(client, store, make_options):
    lock = client.acquire(make_options(auto_renew=True, lease_duration=1))
    # someone else's write bumps the version under us
    store.replace(lock.key, lock.to_document(), 1, lock.version_token)
    time.sleep(1.5)
    assert not lock.is_acquired
    assert lock.renewer is None


def test_interval_shrinks_by_renew_latency():
    calls = []
    lock = LockHandle("k", "n", 1)
    lock.acquired_at = time.time() + 60

    def slow_renew(l):
        calls.append(time.time())
        time.sleep(0.2)

    renewer = AutoRenewer(slow_renew, lock)
    renewer.start()
    time.sleep(1.2)
    renewer.stop()
    assert len(calls) >= 3
    # tick start to tick start stays near lease/3, not lease/3 + latency
    gaps = [b - a for a, b in zip(calls, calls[1:])]
    assert max(gaps) < 0.333 + 0.1


def test_stop_waits_for_renew_in_flight():
    entered = threading.Event()
    finished = []
    lock = LockHandle("k", "n", 1)
    lock.acquired_at = time.time() + 60

    def slow_renew(l):
        entered.set()
        time.sleep(0.3)
        finished.append(True)

    renewer = AutoRenewer(slow_renew, lock)
    renewer.start()
    assert entered.wait(2)
    renewer.stop()
    assert finished == [True]
    assert not renewer.running
    # idempotent
    renewer.stop()
