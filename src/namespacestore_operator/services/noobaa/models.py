"""Models for the storage system management API."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ...constants import POOL_RESOURCE_TYPE_INTERNAL


class RPCError(Exception):
    """Error reply returned by the management API."""

    def __init__(self, rpc_code: str, message: str) -> None:
        super().__init__(f"{rpc_code}: {message}")
        self.rpc_code = rpc_code
        self.message = message


class CheckStatus(str, Enum):
    """Result codes of an external connection check."""

    SUCCESS = "SUCCESS"
    TIMEOUT = "TIMEOUT"
    INVALID_ENDPOINT = "INVALID_ENDPOINT"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    NOT_SUPPORTED = "NOT_SUPPORTED"
    TIME_SKEW = "TIME_SKEW"
    UNKNOWN_FAILURE = "UNKNOWN_FAILURE"

    @classmethod
    def parse(cls, value: str | None) -> CheckStatus:
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN_FAILURE


@dataclass
class CheckConnectionResult:
    status: CheckStatus
    error_code: str = ""
    error_message: str = ""

    @classmethod
    def from_reply(cls, reply: dict[str, Any]) -> CheckConnectionResult:
        error = reply.get("error") or {}
        return cls(
            status=CheckStatus.parse(reply.get("status")),
            error_code=error.get("code", ""),
            error_message=error.get("message", ""),
        )


@dataclass
class ExternalConnectionInfo:
    name: str
    endpoint: str
    endpoint_type: str
    identity: str = ""
    auth_method: str | None = None

    @property
    def identity_key(self) -> tuple[str, str, str]:
        return (self.endpoint_type, self.endpoint, self.identity)

    @classmethod
    def from_reply(cls, reply: dict[str, Any]) -> ExternalConnectionInfo:
        return cls(
            name=reply.get("name", ""),
            endpoint=reply.get("endpoint", ""),
            endpoint_type=reply.get("endpoint_type", ""),
            identity=reply.get("identity", ""),
            auth_method=reply.get("auth_method"),
        )


@dataclass
class NamespaceResourceInfo:
    """The remote side's handle for a namespace resource."""

    name: str
    endpoint_type: str = ""
    endpoint: str = ""
    identity: str = ""
    target_bucket: str = ""
    mode: str = ""

    @property
    def identity_key(self) -> tuple[str, str, str]:
        return (self.endpoint_type, self.endpoint, self.identity)

    @classmethod
    def from_reply(cls, reply: dict[str, Any]) -> NamespaceResourceInfo:
        return cls(
            name=reply.get("name", ""),
            endpoint_type=reply.get("endpoint_type", ""),
            endpoint=reply.get("endpoint", ""),
            identity=reply.get("identity", ""),
            target_bucket=reply.get("target_bucket", ""),
            mode=reply.get("mode", ""),
        )


@dataclass
class AccountInfo:
    email: str
    has_s3_access: bool = False
    default_resource: str = ""
    allowed_buckets: dict[str, Any] = field(default_factory=dict)
    external_connections: list[ExternalConnectionInfo] = field(default_factory=list)

    @classmethod
    def from_reply(cls, reply: dict[str, Any]) -> AccountInfo:
        connections = (reply.get("external_connections") or {}).get("connections") or []
        return cls(
            email=reply.get("email", ""),
            has_s3_access=bool(reply.get("has_s3_access", False)),
            default_resource=reply.get("default_resource") or reply.get("default_pool") or "",
            allowed_buckets=dict(reply.get("allowed_buckets") or {}),
            external_connections=[ExternalConnectionInfo.from_reply(c) for c in connections],
        )


@dataclass
class PoolInfo:
    name: str
    resource_type: str = ""

    @classmethod
    def from_reply(cls, reply: dict[str, Any]) -> PoolInfo:
        return cls(name=reply.get("name", ""), resource_type=reply.get("resource_type", ""))


@dataclass
class SystemInfo:
    """Snapshot of the remote system state relevant to namespace stores."""

    pools: list[PoolInfo] = field(default_factory=list)
    accounts: list[AccountInfo] = field(default_factory=list)
    namespace_resources: list[NamespaceResourceInfo] = field(default_factory=list)

    @classmethod
    def from_reply(cls, reply: dict[str, Any]) -> SystemInfo:
        return cls(
            pools=[PoolInfo.from_reply(p) for p in reply.get("pools") or []],
            accounts=[AccountInfo.from_reply(a) for a in reply.get("accounts") or []],
            namespace_resources=[
                NamespaceResourceInfo.from_reply(r) for r in reply.get("namespace_resources") or []
            ],
        )

    def find_namespace_resource(self, name: str) -> NamespaceResourceInfo | None:
        for resource in self.namespace_resources:
            if resource.name == name:
                return resource
        return None

    def find_connection(self, identity_key: tuple[str, str, str]) -> ExternalConnectionInfo | None:
        """Return the first registered connection with a matching identity triple."""
        for account in self.accounts:
            for connection in account.external_connections:
                if connection.identity_key == identity_key:
                    return connection
        return None

    def internal_pool_name(self) -> str:
        for pool in self.pools:
            if pool.resource_type == POOL_RESOURCE_TYPE_INTERNAL:
                return pool.name
        return ""


@dataclass
class CreateNamespaceResourceParams:
    name: str
    namespace_store_namespace: str
    connection: str = ""
    target_bucket: str = ""
    nsfs_config: dict[str, str] | None = None

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "name": self.name,
            "namespace_store": {"name": self.name, "namespace": self.namespace_store_namespace},
        }
        if self.nsfs_config is not None:
            params["nsfs_config"] = self.nsfs_config
        else:
            params["connection"] = self.connection
            params["target_bucket"] = self.target_bucket
        return params
