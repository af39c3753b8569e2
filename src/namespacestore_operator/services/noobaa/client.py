"""JSON-over-HTTP RPC client for the storage system management API."""

from __future__ import annotations

import itertools
import logging
import time
from typing import Any

import httpx

from ... import metrics
from ...models import ConnectionDescriptor
from ...utils.rate_limit import rate_limit_noobaa
from .models import (
    CheckConnectionResult,
    CreateNamespaceResourceParams,
    RPCError,
    SystemInfo,
)

logger = logging.getLogger(__name__)

_request_ids = itertools.count(1)


def connection_params(descriptor: ConnectionDescriptor) -> dict[str, Any]:
    """Translate a connection descriptor into RPC params."""
    params: dict[str, Any] = {
        "name": descriptor.name,
        "endpoint": descriptor.endpoint,
        "endpoint_type": descriptor.endpoint_type,
        "identity": descriptor.identity,
        "secret": descriptor.secret,
    }
    if descriptor.auth_method:
        params["auth_method"] = descriptor.auth_method
    return params


class NooBaaClient:
    """Management API client."""

    def __init__(
        self,
        address: str,
        auth_token: str,
        verify: bool = True,
        timeout: float = 20.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            address: RPC endpoint URL (e.g. https://noobaa-mgmt.ns.svc:443/rpc/)
            auth_token: Token authorizing the operator's calls
            verify: Verify the TLS certificate of the endpoint
            timeout: Per-call timeout in seconds
            http_client: Optional preconfigured httpx client
        """
        self.address = address
        self.auth_token = auth_token
        self._http = http_client or httpx.Client(
            verify=verify,
            timeout=httpx.Timeout(timeout, connect=10.0),
        )

    def close(self) -> None:
        self._http.close()

    def call(self, api: str, method: str, params: dict[str, Any] | None = None) -> Any:
        """Make one RPC call and return its reply.

        Raises:
            RPCError: If the system replied with an error
            httpx.HTTPError: On transport failures or unexpected HTTP status
        """
        operation = f"{api}.{method}"
        request = {
            "op": "req",
            "reqid": next(_request_ids),
            "api": api,
            "method": method,
            "auth_token": self.auth_token,
            "params": params or {},
        }

        start_time = time.time()
        try:
            response = rate_limit_noobaa(self._http.post)(self.address, json=request)
            body = self._parse_body(response)
            error = body.get("error")
            if error:
                raise RPCError(error.get("rpc_code", "UNKNOWN"), error.get("message", ""))
            metrics.api_call_total.labels(api_type="noobaa", operation=operation, result="success").inc()
            return body.get("reply")
        except RPCError as e:
            metrics.api_call_total.labels(api_type="noobaa", operation=operation, result=e.rpc_code).inc()
            logger.info(f"RPC {operation} failed: {e.rpc_code}")
            raise
        except httpx.HTTPError:
            metrics.api_call_total.labels(api_type="noobaa", operation=operation, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="noobaa", operation=operation).observe(duration)

    @staticmethod
    def _parse_body(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            response.raise_for_status()
            raise RPCError("BAD_REPLY", f"non JSON reply with status {response.status_code}")
        if not isinstance(body, dict):
            raise RPCError("BAD_REPLY", "reply is not an object")
        if not body.get("error"):
            response.raise_for_status()
        return body

    def read_system(self) -> SystemInfo:
        return SystemInfo.from_reply(self.call("system_api", "read_system") or {})

    def check_external_connection(self, descriptor: ConnectionDescriptor) -> CheckConnectionResult:
        reply = self.call("account_api", "check_external_connection", connection_params(descriptor))
        return CheckConnectionResult.from_reply(reply or {})

    def add_external_connection(self, descriptor: ConnectionDescriptor) -> None:
        self.call("account_api", "add_external_connection", connection_params(descriptor))

    def delete_external_connection(self, name: str) -> None:
        self.call("account_api", "delete_external_connection", {"connection_name": name})

    def create_namespace_resource(self, params: CreateNamespaceResourceParams) -> None:
        self.call("pool_api", "create_namespace_resource", params.to_params())

    def delete_namespace_resource(self, name: str) -> None:
        self.call("pool_api", "delete_namespace_resource", {"name": name})

    def update_account_s3_access(
        self,
        email: str,
        s3_access: bool,
        default_resource: str,
        allowed_buckets: dict[str, Any],
    ) -> None:
        self.call(
            "account_api",
            "update_account_s3_access",
            {
                "email": email,
                "s3_access": s3_access,
                "default_resource": default_resource,
                "allowed_buckets": allowed_buckets,
            },
        )
