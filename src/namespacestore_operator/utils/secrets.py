"""Utilities for reading Kubernetes secrets."""

from __future__ import annotations

import base64
from typing import Any

from kubernetes import client

from .. import metrics
from .rate_limit import rate_limit_k8s


def _decode_value(value: Any) -> str:
    # Handle both string and bytes (different versions of kubernetes client)
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            return value
    return value.decode("utf-8")


def read_secret_data(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
) -> dict[str, str] | None:
    """Read all data from a Kubernetes secret.

    Args:
        api: Kubernetes API client
        namespace: Namespace of the secret
        secret_name: Name of the secret

    Returns:
        Dictionary of decoded secret data, or None if the secret does not exist
    """
    try:
        secret = rate_limit_k8s(api.read_namespaced_secret)(name=secret_name, namespace=namespace)
    except client.exceptions.ApiException as e:
        if e.status == 404:
            metrics.api_call_total.labels(api_type="k8s", operation="read_secret", result="not_found").inc()
            return None
        metrics.api_call_total.labels(api_type="k8s", operation="read_secret", result="error").inc()
        raise

    metrics.api_call_total.labels(api_type="k8s", operation="read_secret", result="success").inc()
    result = {key: _decode_value(value) for key, value in (secret.data or {}).items()}
    return result
