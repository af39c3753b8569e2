"""Domain models for NamespaceStore reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from .constants import EVENT_TYPE_NORMAL, EVENT_TYPE_WARNING


class Phase(str, Enum):
    """Coarse-grained stage of a NamespaceStore's convergence."""

    NEW = ""
    VERIFYING = "Verifying"
    CONNECTING = "Connecting"
    CREATING = "Creating"
    READY = "Ready"
    REJECTED = "Rejected"
    DELETING = "Deleting"

    @classmethod
    def parse(cls, value: str | None) -> Phase:
        try:
            return cls(value or "")
        except ValueError:
            return cls.NEW


@dataclass(frozen=True)
class SecretRef:
    """Reference to a credentials secret."""

    name: str
    namespace: str


@dataclass(frozen=True)
class AWSS3Spec:
    region: str = ""
    ssl_disabled: bool = False
    target_bucket: str = ""
    secret: SecretRef | None = None


@dataclass(frozen=True)
class S3CompatibleSpec:
    endpoint: str = ""
    signature_version: str = ""
    target_bucket: str = ""
    secret: SecretRef | None = None


@dataclass(frozen=True)
class IBMCosSpec:
    endpoint: str = ""
    signature_version: str = ""
    target_bucket: str = ""
    secret: SecretRef | None = None


@dataclass(frozen=True)
class AzureBlobSpec:
    target_blob_container: str = ""
    secret: SecretRef | None = None


@dataclass(frozen=True)
class NSFSSpec:
    fs_backend: str = ""
    fs_root_path: str = ""


StoreSpec = Union[AWSS3Spec, S3CompatibleSpec, IBMCosSpec, AzureBlobSpec, NSFSSpec]


def target_container(store: StoreSpec) -> str:
    """Return the remote container a store maps onto, if any."""
    if isinstance(store, AzureBlobSpec):
        return store.target_blob_container
    if isinstance(store, NSFSSpec):
        return ""
    return store.target_bucket


@dataclass(frozen=True)
class CredentialBundle:
    """Resolved identity/secret pair used to reach the remote endpoint."""

    identity: str = ""
    secret: str = ""

    def __repr__(self) -> str:
        return f"CredentialBundle(identity={self.identity!r}, secret='***')"


@dataclass
class ConnectionDescriptor:
    """Normalized remote endpoint identity.

    Two descriptors denote the same remote connection when their
    (endpoint_type, endpoint, identity) triples are equal, regardless of name.
    """

    name: str
    endpoint_type: str
    endpoint: str
    identity: str = ""
    secret: str = field(default="", repr=False)
    auth_method: str | None = None

    @property
    def identity_key(self) -> tuple[str, str, str]:
        return (self.endpoint_type, self.endpoint, self.identity)


@dataclass(frozen=True)
class ModeInfo:
    """Phase and event severity derived from a remote mode."""

    phase: Phase
    severity: str


def default_mode_table() -> dict[str, ModeInfo]:
    """Build the mapping of remote modes to phase and severity."""
    return {
        "OPTIMAL": ModeInfo(Phase.READY, EVENT_TYPE_NORMAL),
        "IO_ERRORS": ModeInfo(Phase.REJECTED, EVENT_TYPE_WARNING),
        "STORAGE_NOT_EXIST": ModeInfo(Phase.REJECTED, EVENT_TYPE_WARNING),
        "AUTH_FAILED": ModeInfo(Phase.REJECTED, EVENT_TYPE_WARNING),
    }


@dataclass
class ReconcileResult:
    """Outcome handed back to the host after one reconciliation."""

    requeue_after: float | None = None
