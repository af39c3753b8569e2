"""Base handler class with common functionality for all CRD handlers."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from .. import metrics
from ..constants import FINALIZER, LABEL_APP, LABEL_APP_VALUE
from ..logging import log_resource_event
from ..models import ReconcileResult
from ..utils.errors import sanitize_exception

CONTROLLER_NAME = "namespacestore-operator"


class BaseHandler:
    """Base class for all CRD handlers with common functionality."""

    def __init__(self, kind: str):
        """Initialize base handler.

        Args:
            kind: The Kubernetes resource kind (e.g., "NamespaceStore")
        """
        self.kind = kind
        self.logger = logging.getLogger(__name__)

    def _get_resource_context(self, meta: dict[str, Any]) -> dict[str, Any]:
        """Extract common resource context from metadata."""
        return {
            "name": meta.get("name", "unknown"),
            "namespace": meta.get("namespace", "default"),
            "uid": meta.get("uid", "unknown"),
        }

    def _log(
        self,
        level: int,
        meta: dict[str, Any],
        message: str,
        event: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        ctx = self._get_resource_context(meta)
        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message."""
        self._log(logging.INFO, meta, message, event, reason, **kwargs)

    def log_warning(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        """Log a warning-level structured log message."""
        self._log(logging.WARNING, meta, message, event, reason, **kwargs)

    def log_error(
        self,
        meta: dict[str, Any],
        message: str,
        error: BaseException | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        log_data = kwargs.copy()

        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__

        self._log(logging.ERROR, meta, message, event, reason, **log_data)

    def ensure_common_meta_fields(self, meta: dict[str, Any]) -> bool:
        """Ensure the app label and finalizer are present.

        Returns:
            True if metadata was changed and must be written back
        """
        updated = False

        labels = meta.get("labels") or {}
        if labels.get(LABEL_APP) != LABEL_APP_VALUE:
            labels[LABEL_APP] = LABEL_APP_VALUE
            meta["labels"] = labels
            updated = True

        finalizers = meta.get("finalizers") or []
        if FINALIZER not in finalizers:
            meta["finalizers"] = [*finalizers, FINALIZER]
            updated = True

        return updated

    def remove_finalizer(self, meta: dict[str, Any]) -> bool:
        """Remove finalizer from metadata.

        Returns:
            True if the finalizer was present
        """
        finalizers = meta.get("finalizers") or []
        if FINALIZER not in finalizers:
            return False
        meta["finalizers"] = [f for f in finalizers if f != FINALIZER]
        return True

    def reconcile_with_metrics(
        self,
        meta: dict[str, Any],
        reconcile_fn: Callable[[], ReconcileResult],
        requeue_delay: float,
    ) -> ReconcileResult:
        """Execute reconciliation with metrics.

        Anything escaping reconcile_fn is logged and turned into a requeue so
        that the host never sees an error.

        Args:
            meta: Kubernetes resource metadata
            reconcile_fn: Function to execute for reconciliation
            requeue_delay: Delay to request when reconcile_fn fails unexpectedly
        """
        metrics.reconcile_total.labels(kind=self.kind, result="started").inc()

        start_time = time.time()
        try:
            result = reconcile_fn()
            outcome = "requeue" if result.requeue_after is not None else "done"
            metrics.reconcile_total.labels(kind=self.kind, result=outcome).inc()
            return result
        except Exception as e:
            self.log_error(meta, "Reconciliation failed", error=e, reason="ReconciliationFailed")
            metrics.reconcile_total.labels(kind=self.kind, result="error").inc()
            return ReconcileResult(requeue_after=requeue_delay)
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(duration)
