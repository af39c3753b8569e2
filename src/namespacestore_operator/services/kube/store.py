"""Record store over the Kubernetes custom objects API."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

from kubernetes import client

from ... import metrics
from ...constants import (
    API_GROUP,
    API_VERSION,
    KIND_NAMESPACE_STORE,
    KIND_NOOBAA,
    PLURAL_NAMESPACE_STORES,
    PLURAL_NOOBAAS,
)
from ...utils.rate_limit import is_rate_limit_error, rate_limit_k8s
from ...utils.secrets import read_secret_data


class RecordStoreError(Exception):
    """Base error of record store operations."""


class ConflictError(RecordStoreError):
    """Optimistic concurrency conflict (stale resourceVersion)."""


class NotFoundError(RecordStoreError):
    """The record does not exist."""


class SchemaError(RecordStoreError):
    """The CRD is missing or the record does not match its schema."""


@dataclass(frozen=True)
class ResourceKind:
    group: str
    version: str
    plural: str
    kind: str


NAMESPACE_STORE = ResourceKind(API_GROUP, API_VERSION, PLURAL_NAMESPACE_STORES, KIND_NAMESPACE_STORE)
NOOBAA = ResourceKind(API_GROUP, API_VERSION, PLURAL_NOOBAAS, KIND_NOOBAA)


def _translate(e: client.exceptions.ApiException, kind: ResourceKind, name: str) -> RecordStoreError:
    if e.status == 409:
        return ConflictError(f"Conflict: {kind.kind} {name!r}: {e.reason}")
    if e.status == 404:
        return NotFoundError(f"Not Found: {kind.kind} {name!r}")
    if e.status == 422:
        return SchemaError(f"Invalid: {kind.kind} {name!r}: {e.reason}")
    return RecordStoreError(f"{kind.kind} {name!r}: {e.status} {e.reason}")


class KubeRecordStore:
    """Get/create/update/delete custom resources with optimistic concurrency."""

    def __init__(
        self,
        custom_api: client.CustomObjectsApi,
        core_api: client.CoreV1Api,
        max_rate_limit_retries: int = 3,
    ) -> None:
        self.custom_api = custom_api
        self.core_api = core_api
        self.max_rate_limit_retries = max_rate_limit_retries

    def _call(self, operation: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        attempt = 0
        start_time = time.time()
        try:
            while True:
                try:
                    result = rate_limit_k8s(fn)(**kwargs)
                    metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
                    return result
                except client.exceptions.ApiException as e:
                    if is_rate_limit_error(e) and attempt < self.max_rate_limit_retries:
                        # Exponential backoff: 1s, 2s, 4s
                        time.sleep(2 ** attempt)
                        attempt += 1
                        continue
                    metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
                    raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any] | None:
        """Return the record, or None when it does not exist.

        A missing CRD is reported as not found.
        """
        try:
            return self._call(
                f"get_{kind.plural}",
                self.custom_api.get_namespaced_custom_object,
                group=kind.group,
                version=kind.version,
                namespace=namespace,
                plural=kind.plural,
                name=name,
            )
        except client.exceptions.ApiException as e:
            if e.status == 404:
                return None
            raise _translate(e, kind, name) from e

    def create(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        meta = body.get("metadata", {})
        try:
            return self._call(
                f"create_{kind.plural}",
                self.custom_api.create_namespaced_custom_object,
                group=kind.group,
                version=kind.version,
                namespace=meta.get("namespace"),
                plural=kind.plural,
                body=body,
            )
        except client.exceptions.ApiException as e:
            raise _translate(e, kind, meta.get("name", "")) from e

    def update(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        """Replace metadata and spec; fails with ConflictError on a stale resourceVersion."""
        meta = body.get("metadata", {})
        try:
            return self._call(
                f"update_{kind.plural}",
                self.custom_api.replace_namespaced_custom_object,
                group=kind.group,
                version=kind.version,
                namespace=meta.get("namespace"),
                plural=kind.plural,
                name=meta.get("name"),
                body=body,
            )
        except client.exceptions.ApiException as e:
            raise _translate(e, kind, meta.get("name", "")) from e

    def update_status(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        """Replace the status subresource; fails with ConflictError on a stale resourceVersion."""
        meta = body.get("metadata", {})
        try:
            return self._call(
                f"update_{kind.plural}_status",
                self.custom_api.replace_namespaced_custom_object_status,
                group=kind.group,
                version=kind.version,
                namespace=meta.get("namespace"),
                plural=kind.plural,
                name=meta.get("name"),
                body=body,
            )
        except client.exceptions.ApiException as e:
            raise _translate(e, kind, meta.get("name", "")) from e

    def delete(self, kind: ResourceKind, namespace: str, name: str) -> None:
        """Delete the record; a record that is already gone is not an error."""
        try:
            self._call(
                f"delete_{kind.plural}",
                self.custom_api.delete_namespaced_custom_object,
                group=kind.group,
                version=kind.version,
                namespace=namespace,
                plural=kind.plural,
                name=name,
            )
        except client.exceptions.ApiException as e:
            if e.status == 404:
                return
            raise _translate(e, kind, name) from e

    def get_secret(self, namespace: str, name: str) -> dict[str, str] | None:
        """Return decoded secret data, or None when the secret does not exist."""
        return read_secret_data(self.core_api, namespace, name)


def get_k8s_store() -> KubeRecordStore:
    """Build a record store from in-cluster or local kube config."""
    from kubernetes import config

    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()

    return KubeRecordStore(client.CustomObjectsApi(), client.CoreV1Api())
