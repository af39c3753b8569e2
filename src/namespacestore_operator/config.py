"""Operator configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class OperatorConfig:
    """Settings shared by every reconciliation."""

    system_name: str = "noobaa"
    mgmt_address: str | None = None
    auth_token: str | None = None
    auth_secret_name: str = "noobaa-operator"
    mgmt_insecure: bool = False
    rpc_timeout_seconds: float = 20.0
    requeue_delay_seconds: float = 3.0
    grace_period_seconds: float = 300.0

    @classmethod
    def from_env(cls) -> OperatorConfig:
        """Build the configuration from environment variables."""
        return cls(
            system_name=os.getenv("SYSTEM_NAME", "noobaa"),
            mgmt_address=os.getenv("NOOBAA_MGMT_ADDRESS") or None,
            auth_token=os.getenv("NOOBAA_AUTH_TOKEN") or None,
            auth_secret_name=os.getenv("NOOBAA_AUTH_SECRET", "noobaa-operator"),
            mgmt_insecure=_env_bool("NOOBAA_MGMT_INSECURE"),
            rpc_timeout_seconds=float(os.getenv("NOOBAA_RPC_TIMEOUT_SECONDS", "20")),
            requeue_delay_seconds=float(os.getenv("REQUEUE_DELAY_SECONDS", "3")),
            grace_period_seconds=float(os.getenv("GRACE_PERIOD_SECONDS", "300")),
        )

    def mgmt_address_for(self, namespace: str) -> str:
        """Return the management RPC address of the system in a namespace."""
        if self.mgmt_address:
            return self.mgmt_address
        return f"https://noobaa-mgmt.{namespace}.svc.cluster.local:443/rpc/"
