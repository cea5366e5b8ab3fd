"""
Store Adapter backed by an etcd v3 cluster.

Each lock item lives under `<prefix>/<shard_key>/<name>` and is attached to
an etcd lease of the item's TTL. Every create/replace grants a fresh lease, so
a rewrite restarts the TTL; the lease the item was on before is revoked. The
version token is the key's mod_revision.
"""
import json
import logging
from contextlib import contextmanager
from typing import Optional

import etcd3
import etcd3.exceptions
import grpc

from .consistency import ConsistencyLevel
from .exceptions import AlreadyExists, NotFound, StoreFailure, VersionMismatch
from .store import ItemKey

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(action: str, key: str):
    try:
        yield
    except (etcd3.exceptions.Etcd3Exception, grpc.RpcError) as e:
        logger.error("etcd %s failed for %s: %s", action, key, e)
        raise StoreFailure(f"etcd {action} failed for {key}: {e}") from e


class EtcdStore:
    """
    Parameters:
        client (etcd3.Etcd3Client): connected etcd client
        prefix (str): key prefix all lock items are stored under
        serializable_reads (bool): serve plain reads from the local member
            without a quorum round-trip; such reads may be stale, so the lock
            client refuses a store built this way
    """

    def __init__(self, client, prefix: str = "/locks", serializable_reads: bool = False):
        self._client = client
        self._prefix = prefix.rstrip("/")
        self._serializable_reads = serializable_reads
        self.client_consistency_level: Optional[ConsistencyLevel] = (
            ConsistencyLevel.EVENTUAL if serializable_reads else None
        )

    @classmethod
    def from_settings(cls, settings) -> "EtcdStore":
        client = etcd3.client(
            host=settings.etcd_host,
            port=settings.etcd_port,
            timeout=settings.etcd_timeout,
        )
        logger.debug("Connecting to etcd at %s:%s", settings.etcd_host, settings.etcd_port)
        return cls(client, prefix=settings.key_prefix)

    def item_key(self, key: ItemKey) -> str:
        return f"{self._prefix}/{key.shard_key}/{key.name}"

    def create(self, key: ItemKey, document: dict, ttl: int) -> str:
        path = self.item_key(key)
        txn = self._client.transactions
        with _translate_errors("create", path):
            lease = self._client.lease(ttl)
            # 1) Atomic create-if-not-exists on a fresh lease
            ok, responses = self._client.transaction(
                compare=[txn.create(path) == 0],
                success=[txn.put(path, self._encode(document, lease), lease), txn.get(path)],
                failure=[],
            )
            if ok:
                version = self._mod_revision(responses[1])
                logger.debug("Created %s at revision %s (lease %s)", path, version, lease.id)
                return version

            # 2) Someone else holds it: drop the lease we just granted
            self._safe_revoke(lease.id)
        raise AlreadyExists(f"Item {path} already exists")

    def replace(self, key: ItemKey, document: dict, ttl: int, expected_version: str) -> str:
        path = self.item_key(key)
        revision = self._revision(expected_version)
        txn = self._client.transactions
        with _translate_errors("replace", path):
            if revision is None:
                self._raise_conflict(path)
            lease = self._client.lease(ttl)
            ok, responses = self._client.transaction(
                compare=[txn.mod(path) == revision],
                success=[txn.get(path), txn.put(path, self._encode(document, lease), lease), txn.get(path)],
                failure=[txn.get(path)],
            )
            if ok:
                self._revoke_replaced(path, self._lease_id(responses[0]))
                version = self._mod_revision(responses[2])
                logger.debug("Replaced %s at revision %s (lease %s)", path, version, lease.id)
                return version
            self._safe_revoke(lease.id)
        self._conflict(path, responses[0])

    def delete(self, key: ItemKey, expected_version: str) -> None:
        path = self.item_key(key)
        revision = self._revision(expected_version)
        txn = self._client.transactions
        with _translate_errors("delete", path):
            if revision is None:
                self._raise_conflict(path)
            ok, responses = self._client.transaction(
                compare=[txn.mod(path) == revision],
                success=[txn.get(path), txn.delete(path)],
                failure=[txn.get(path)],
            )
            if ok:
                self._revoke_replaced(path, self._lease_id(responses[0]))
                logger.debug("Deleted %s", path)
                return
        self._conflict(path, responses[0])

    def query_consistency_level(self) -> ConsistencyLevel:
        # etcd serves linearizable reads and writes; just make sure it answers.
        with _translate_errors("status", self._prefix):
            status = self._client.status()
        logger.debug("etcd cluster reachable (version %s)", getattr(status, "version", "?"))
        return ConsistencyLevel.STRONG

    def _safe_revoke(self, lease_id) -> None:
        """
        Try to revoke a lease, but ignore if the lease has already expired.
        """
        if not lease_id:
            return
        try:
            self._client.revoke_lease(lease_id)
            logger.debug("Lease %s revoked", lease_id)
        except (etcd3.exceptions.Etcd3Exception, grpc.RpcError) as e:
            # etcd returns an error if the lease is not found (already expired)
            if "requested lease not found" not in str(e):
                raise
            logger.debug("Lease %s not found (already expired)", lease_id)

    def _revoke_replaced(self, path: str, lease_id) -> None:
        # The write already committed; a leftover lease just runs out its TTL.
        try:
            self._safe_revoke(lease_id)
        except (etcd3.exceptions.Etcd3Exception, grpc.RpcError) as e:
            logger.warning("Could not revoke old lease %s of %s: %s", lease_id, path, e)

    def _raise_conflict(self, path: str) -> None:
        value, _ = self._client.get(path, serializable=self._serializable_reads)
        if value is None:
            raise NotFound(f"Item {path} does not exist")
        raise VersionMismatch(f"Item {path} has a different version")

    @staticmethod
    def _conflict(path: str, kvs) -> None:
        if not kvs:
            raise NotFound(f"Item {path} does not exist")
        raise VersionMismatch(f"Item {path} has a different version")

    @staticmethod
    def _encode(document: dict, lease) -> str:
        return json.dumps(dict(document, lease=lease.id), sort_keys=True)

    @staticmethod
    def _revision(version: Optional[str]) -> Optional[int]:
        try:
            revision = int(version)
        except (TypeError, ValueError):
            return None
        # mod_revision 0 would match a missing key
        return revision if revision > 0 else None

    @staticmethod
    def _mod_revision(kvs) -> str:
        _, metadata = kvs[0]
        return str(metadata.mod_revision)

    @staticmethod
    def _lease_id(kvs):
        if not kvs:
            return None
        _, metadata = kvs[0]
        return metadata.lease_id
