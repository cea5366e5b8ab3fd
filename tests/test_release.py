import time

import pytest

from leaselock import InvalidArgument, LockUnavailable, StoreFailure


def test_release_with_acquired_lock(client, store, make_options):
    options = make_options(lease_duration=120)
    lock = client.acquire(options)
    client.release(lock)
    assert not store.contains(lock.key)
    # must not raise LockUnavailable
    client.acquire(options)


def test_release_with_expired_lock(client, make_options):
    lock = client.acquire(make_options(lease_duration=1))
    time.sleep(1.5)
    # no-op, no error
    client.release(lock)
    assert not lock.is_acquired
    assert lock.released


def test_release_with_reacquired_lock_leaves_new_holder(client, store, make_options):
    options = make_options(lease_duration=1)
    old = client.acquire(options)
    time.sleep(1)
    new = client.acquire(options)
    client.release(old)
    assert old.released
    assert store.contains(new.key)
    assert new.is_acquired


def test_release_twice(client, make_options):
    lock = client.acquire(make_options())
    client.release(lock)
    client.release(lock)
    assert not lock.is_acquired


def test_is_acquired_false_after_release(client, make_options):
    lock = client.acquire(make_options(lease_duration=120))
    assert lock.is_acquired
    client.release(lock)
    assert not lock.is_acquired


def test_release_lock_must_not_be_none(client):
    with pytest.raises(InvalidArgument) as excinfo:
        client.release(None)
    assert excinfo.value.field == "lock"


def test_store_failure_propagates(client, store, make_options):
    lock = client.acquire(make_options())
    store.fail_on_delete = StoreFailure("timed out")
    with pytest.raises(StoreFailure) as excinfo:
        client.release(lock)
    assert excinfo.value is store.fail_on_delete
    # caller may retry
    assert not lock.released
    assert lock.is_acquired

    store.fail_on_delete = None
    client.release(lock)
    assert lock.released


def test_other_exception_propagates(client, store, make_options):
    lock = client.acquire(make_options())
    store.fail_on_delete = RuntimeError("unexpected")
    with pytest.raises(RuntimeError):
        client.release(lock)
    assert not lock.released


def test_hold_releases_on_exit(client, store, make_options):
    with client.hold(make_options()) as lock:
        assert lock.is_acquired
        assert store.contains(lock.key)
        # a second holder must time out
        with pytest.raises(LockUnavailable):
            with client.hold(make_options(timeout_ms=100, retry_wait_ms=20)):
                pass
    assert lock.released
    assert not store.contains(lock.key)


def test_hold_releases_when_block_raises(client, store, make_options):
    with pytest.raises(KeyError):
        with client.hold(make_options()) as lock:
            raise KeyError("boom")
    assert lock.released
    assert not store.contains(lock.key)


def test_hold_logs_failed_release(client, store, make_options, caplog):
    with client.hold(make_options()) as lock:
        store.fail_on_delete = StoreFailure("timed out")
    assert not lock.released
    assert "Error releasing lock 'test-key/test-name'" in caplog.text
