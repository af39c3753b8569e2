"""Storage system management interface."""

from __future__ import annotations

from typing import Any, Protocol

from ...models import ConnectionDescriptor
from .models import CheckConnectionResult, CreateNamespaceResourceParams, SystemInfo


class StorageSystemClient(Protocol):
    """Protocol defining the management calls the reconciler relies on."""

    def read_system(self) -> SystemInfo:
        """Read pools, accounts with their connections, and namespace resources."""
        ...

    def check_external_connection(self, descriptor: ConnectionDescriptor) -> CheckConnectionResult:
        """Ask the system to test an external connection without registering it."""
        ...

    def add_external_connection(self, descriptor: ConnectionDescriptor) -> None:
        """Register an external connection."""
        ...

    def delete_external_connection(self, name: str) -> None:
        """Delete an external connection. Raises RPCError IN_USE while still referenced."""
        ...

    def create_namespace_resource(self, params: CreateNamespaceResourceParams) -> None:
        """Create a namespace resource."""
        ...

    def delete_namespace_resource(self, name: str) -> None:
        """Delete a namespace resource. Raises RPCError IN_USE while buckets are attached."""
        ...

    def update_account_s3_access(
        self,
        email: str,
        s3_access: bool,
        default_resource: str,
        allowed_buckets: dict[str, Any],
    ) -> None:
        """Update an account's S3 access and default resource."""
        ...
