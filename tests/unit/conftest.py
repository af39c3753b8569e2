"""Shared fixtures for unit tests."""

from __future__ import annotations

import copy
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from namespacestore_operator.config import OperatorConfig
from namespacestore_operator.constants import (
    API_GROUP_VERSION,
    KIND_NAMESPACE_STORE,
    KIND_NOOBAA,
    POOL_RESOURCE_TYPE_INTERNAL,
    RPC_CODE_IN_USE,
)
from namespacestore_operator.handlers.namespacestore import NamespaceStoreController
from namespacestore_operator.services.kube import (
    NAMESPACE_STORE,
    NOOBAA,
    ConflictError,
    NotFoundError,
    ResourceKind,
)
from namespacestore_operator.services.noobaa import RPCError
from namespacestore_operator.services.noobaa.models import (
    AccountInfo,
    CheckConnectionResult,
    CheckStatus,
    ExternalConnectionInfo,
    NamespaceResourceInfo,
    PoolInfo,
    SystemInfo,
)

NAMESPACE = "noobaa"
STORE_NAME = "ns1"
SECRET_NAME = "aws-creds"
ADMIN_EMAIL = "admin@noobaa.io"
INTERNAL_POOL = "noobaa-default-backing-store"


class FakeRecordStore:
    """In-memory record store with resourceVersion checks."""

    def __init__(self) -> None:
        self.records: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.secrets: dict[tuple[str, str], dict[str, str]] = {}
        self.status_conflicts = 0
        self.update_error: Exception | None = None
        self.status_writes: list[dict[str, Any]] = []
        self.updates: list[dict[str, Any]] = []
        self._versions = itertools.count(1)
        self._uids = itertools.count(1)

    def _key(self, kind: ResourceKind, namespace: str, name: str) -> tuple[str, str, str]:
        return (kind.plural, namespace, name)

    def add(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        obj = copy.deepcopy(body)
        meta = obj.setdefault("metadata", {})
        meta.setdefault("uid", f"uid-{next(self._uids)}")
        meta.setdefault("creationTimestamp", datetime.now(timezone.utc).isoformat())
        meta.setdefault("generation", 1)
        meta["resourceVersion"] = str(next(self._versions))
        self.records[self._key(kind, meta["namespace"], meta["name"])] = obj
        return copy.deepcopy(obj)

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any] | None:
        obj = self.records.get(self._key(kind, namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def _stored_for_write(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        meta = body["metadata"]
        stored = self.records.get(self._key(kind, meta["namespace"], meta["name"]))
        if stored is None:
            raise NotFoundError(f"Not Found: {kind.kind} {meta['name']!r}")
        if meta.get("resourceVersion") != stored["metadata"]["resourceVersion"]:
            raise ConflictError(f"Conflict: {kind.kind} {meta['name']!r}")
        return stored

    def update(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        if self.update_error is not None:
            raise self.update_error
        stored = self._stored_for_write(kind, body)
        meta = stored["metadata"]
        meta["labels"] = copy.deepcopy(body["metadata"].get("labels"))
        meta["finalizers"] = list(body["metadata"].get("finalizers") or [])
        meta["resourceVersion"] = str(next(self._versions))
        self.updates.append(copy.deepcopy(stored))
        if meta.get("deletionTimestamp") and not meta["finalizers"]:
            del self.records[self._key(kind, meta["namespace"], meta["name"])]
        return copy.deepcopy(stored)

    def update_status(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        if self.status_conflicts:
            self.status_conflicts -= 1
            raise ConflictError(f"Conflict: {kind.kind} {body['metadata']['name']!r}")
        stored = self._stored_for_write(kind, body)
        stored["status"] = copy.deepcopy(body.get("status") or {})
        stored["metadata"]["resourceVersion"] = str(next(self._versions))
        self.status_writes.append(copy.deepcopy(stored["status"]))
        return copy.deepcopy(stored)

    def get_secret(self, namespace: str, name: str) -> dict[str, str] | None:
        data = self.secrets.get((namespace, name))
        return dict(data) if data is not None else None

    def status(self, namespace: str = NAMESPACE, name: str = STORE_NAME) -> dict[str, Any]:
        obj = self.records[self._key(NAMESPACE_STORE, namespace, name)]
        return obj.get("status") or {}

    def phases_written(self) -> list[str]:
        return [s.get("phase", "") for s in self.status_writes]


class FakeSystemClient:
    """In-memory management API recording every call."""

    def __init__(self) -> None:
        self.pools = [PoolInfo(name=INTERNAL_POOL, resource_type=POOL_RESOURCE_TYPE_INTERNAL)]
        self.accounts = [AccountInfo(email=ADMIN_EMAIL, has_s3_access=True, default_resource=INTERNAL_POOL)]
        self.namespace_resources: list[NamespaceResourceInfo] = []
        self.calls: list[tuple[Any, ...]] = []
        self.check_status = CheckStatus.SUCCESS
        self.check_error: Exception | None = None
        self.resource_in_use = False
        self.connection_in_use = False
        self.account_update_errors: dict[str, Exception] = {}

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def read_system(self) -> SystemInfo:
        self.calls.append(("read_system",))
        return SystemInfo(
            pools=copy.deepcopy(self.pools),
            accounts=copy.deepcopy(self.accounts),
            namespace_resources=copy.deepcopy(self.namespace_resources),
        )

    def check_external_connection(self, descriptor: Any) -> CheckConnectionResult:
        self.calls.append(("check_external_connection", descriptor.name))
        if self.check_error is not None:
            raise self.check_error
        return CheckConnectionResult(status=self.check_status)

    def add_external_connection(self, descriptor: Any) -> None:
        self.calls.append(("add_external_connection", descriptor.name))
        self.accounts[0].external_connections.append(
            ExternalConnectionInfo(
                name=descriptor.name,
                endpoint=descriptor.endpoint,
                endpoint_type=descriptor.endpoint_type,
                identity=descriptor.identity,
                auth_method=descriptor.auth_method,
            )
        )

    def find_connection(self, name: str) -> ExternalConnectionInfo | None:
        for account in self.accounts:
            for connection in account.external_connections:
                if connection.name == name:
                    return connection
        return None

    def delete_external_connection(self, name: str) -> None:
        self.calls.append(("delete_external_connection", name))
        if self.connection_in_use:
            raise RPCError(RPC_CODE_IN_USE, f"connection {name} is in use")
        for account in self.accounts:
            account.external_connections = [c for c in account.external_connections if c.name != name]

    def create_namespace_resource(self, params: Any) -> None:
        self.calls.append(("create_namespace_resource", params.name, params.connection))
        connection = self.find_connection(params.connection)
        self.namespace_resources.append(
            NamespaceResourceInfo(
                name=params.name,
                endpoint_type=connection.endpoint_type if connection else "",
                endpoint=connection.endpoint if connection else "",
                identity=connection.identity if connection else "",
                target_bucket=params.target_bucket,
            )
        )

    def delete_namespace_resource(self, name: str) -> None:
        self.calls.append(("delete_namespace_resource", name))
        if self.resource_in_use:
            raise RPCError(RPC_CODE_IN_USE, f"namespace resource {name} is in use")
        self.namespace_resources = [r for r in self.namespace_resources if r.name != name]

    def update_account_s3_access(
        self,
        email: str,
        s3_access: bool,
        default_resource: str,
        allowed_buckets: dict[str, Any],
    ) -> None:
        self.calls.append(("update_account_s3_access", email, default_resource))
        if email in self.account_update_errors:
            raise self.account_update_errors[email]
        for account in self.accounts:
            if account.email == email:
                account.default_resource = default_resource
                account.allowed_buckets = dict(allowed_buckets)

    def set_mode(self, mode: str, name: str = STORE_NAME) -> None:
        for resource in self.namespace_resources:
            if resource.name == name:
                resource.mode = mode


def aws_store_body(
    name: str = STORE_NAME,
    namespace: str = NAMESPACE,
    age: timedelta = timedelta(seconds=1),
    secret_name: str = SECRET_NAME,
    target_bucket: str = "b1",
) -> dict[str, Any]:
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_NAMESPACE_STORE,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "creationTimestamp": (datetime.now(timezone.utc) - age).isoformat(),
        },
        "spec": {
            "type": "aws-s3",
            "awsS3": {
                "targetBucket": target_bucket,
                "region": "us-east-1",
                "secret": {"name": secret_name},
            },
        },
    }


def s3_compatible_store_body(endpoint: str, name: str = STORE_NAME, namespace: str = NAMESPACE) -> dict[str, Any]:
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_NAMESPACE_STORE,
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "type": "s3-compatible",
            "s3Compatible": {
                "endpoint": endpoint,
                "signatureVersion": "v4",
                "targetBucket": "b1",
                "secret": {"name": SECRET_NAME},
            },
        },
    }


def system_body(namespace: str = NAMESPACE) -> dict[str, Any]:
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_NOOBAA,
        "metadata": {"name": "noobaa", "namespace": namespace},
    }


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def system_client() -> FakeSystemClient:
    return FakeSystemClient()


@pytest.fixture
def config() -> OperatorConfig:
    return OperatorConfig(requeue_delay_seconds=3.0, grace_period_seconds=300.0)


@pytest.fixture
def controller(store: FakeRecordStore, system_client: FakeSystemClient, config: OperatorConfig) -> NamespaceStoreController:
    return NamespaceStoreController(store, lambda namespace: system_client, config)  # type: ignore[arg-type]


@pytest.fixture
def with_system(store: FakeRecordStore) -> FakeRecordStore:
    store.add(NOOBAA, system_body())
    return store


@pytest.fixture
def with_secret(with_system: FakeRecordStore) -> FakeRecordStore:
    with_system.secrets[(NAMESPACE, SECRET_NAME)] = {
        "AWS_ACCESS_KEY_ID": "AKIAEXAMPLE",
        "AWS_SECRET_ACCESS_KEY": "secret-example",
    }
    return with_system


@pytest.fixture(autouse=True)
def mock_kopf_event(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Capture events instead of posting them through kopf."""
    events: list[dict[str, Any]] = []

    def fake_event(body: Any, *, type: str, reason: str, message: str = "") -> None:
        events.append({"type": type, "reason": reason, "message": message})

    monkeypatch.setattr("namespacestore_operator.utils.events.kopf.event", fake_event)
    return events
