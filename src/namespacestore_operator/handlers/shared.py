"""Shared utilities for handlers."""

from __future__ import annotations

import threading

from ..config import OperatorConfig
from ..services.kube import KubeRecordStore, RecordStoreError
from ..services.noobaa import NooBaaClient
from ..services.noobaa.base import StorageSystemClient
from ..utils.errors import ReconcileError

AUTH_TOKEN_KEY = "auth_token"


class SystemConnector:
    """Hands out management API clients, one per management address.

    The token is taken from the config when set, otherwise from the
    operator auth secret in the namespace of the reconciled record. A
    rotated token closes and replaces the client of that address.
    """

    def __init__(self, store: KubeRecordStore, config: OperatorConfig) -> None:
        self.store = store
        self.config = config
        self._clients: dict[str, tuple[str, NooBaaClient]] = {}
        self._lock = threading.Lock()

    def _auth_token(self, namespace: str) -> str:
        if self.config.auth_token:
            return self.config.auth_token
        try:
            data = self.store.get_secret(namespace, self.config.auth_secret_name)
        except RecordStoreError as e:
            raise ReconcileError.transient(f"failed to read secret {self.config.auth_secret_name!r}: {e}") from e
        token = (data or {}).get(AUTH_TOKEN_KEY, "")
        if not token:
            raise ReconcileError.transient(
                f"auth token not found in secret {self.config.auth_secret_name!r} of namespace {namespace!r}"
            )
        return token

    def __call__(self, namespace: str) -> StorageSystemClient:
        address = self.config.mgmt_address_for(namespace)
        token = self._auth_token(namespace)
        with self._lock:
            cached = self._clients.get(address)
            if cached is not None:
                cached_token, client = cached
                if cached_token == token:
                    return client
                client.close()
            client = NooBaaClient(
                address,
                token,
                verify=not self.config.mgmt_insecure,
                timeout=self.config.rpc_timeout_seconds,
            )
            self._clients[address] = (token, client)
            return client

    def close(self) -> None:
        with self._lock:
            for _, client in self._clients.values():
                client.close()
            self._clients.clear()
