"""Kubernetes-backed record store."""

from .store import (
    NAMESPACE_STORE,
    NOOBAA,
    ConflictError,
    KubeRecordStore,
    NotFoundError,
    RecordStoreError,
    ResourceKind,
    SchemaError,
    get_k8s_store,
)

__all__ = [
    "NAMESPACE_STORE",
    "NOOBAA",
    "ConflictError",
    "KubeRecordStore",
    "NotFoundError",
    "RecordStoreError",
    "ResourceKind",
    "SchemaError",
    "get_k8s_store",
]
