import pytest

from leaselock import AcquireOptions, InMemoryStore, LockClient


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def client(store):
    return LockClient(store)


@pytest.fixture
def make_options():
    def _make(**overrides):
        values = dict(shard_key="test-key", name="test-name")
        values.update(overrides)
        return AcquireOptions(**values)
    return _make
