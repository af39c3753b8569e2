"""Rate limiting utilities for API calls."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

from kubernetes.client.exceptions import ApiException

from .. import metrics

_F = TypeVar("_F", bound=Callable[..., Any])

# Rate limit configuration
_K8S_RATE_LIMIT_PER_SECOND = float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0"))
_NOOBAA_RATE_LIMIT_PER_SECOND = float(os.getenv("NOOBAA_RATE_LIMIT_PER_SECOND", "5.0"))


class _Limiter:
    """Minimum-interval limiter shared by every caller of one API."""

    def __init__(self, api_type: str, per_second: float) -> None:
        self.api_type = api_type
        self.per_second = per_second
        self._last_call_time = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            min_interval = 1.0 / self.per_second
            time_since_last_call = time.time() - self._last_call_time
            if time_since_last_call < min_interval:
                metrics.rate_limit_hits_total.labels(api_type=self.api_type).inc()
                time.sleep(min_interval - time_since_last_call)
            self._last_call_time = time.time()


_k8s_limiter = _Limiter("k8s", _K8S_RATE_LIMIT_PER_SECOND)
_noobaa_limiter = _Limiter("noobaa", _NOOBAA_RATE_LIMIT_PER_SECOND)


def _limited(limiter: _Limiter, func: _F) -> _F:
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        limiter.wait()
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls."""
    return _limited(_k8s_limiter, func)


def rate_limit_noobaa(func: _F) -> _F:
    """Decorator to rate limit storage system RPC calls."""
    return _limited(_noobaa_limiter, func)


def is_rate_limit_error(e: Exception) -> bool:
    """Check if an API exception is a Kubernetes rate limit error.

    Kubernetes API rate limit errors typically return 429 or 503.
    """
    if not isinstance(e, ApiException):
        return False
    return e.status == 429 or (e.status == 503 and "rate limit" in str(e).lower())
