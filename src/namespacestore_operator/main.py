"""Main entry point for the NamespaceStore Operator."""

from __future__ import annotations

import os
from typing import Any

import kopf

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from .handlers import namespacestore
from .tracing import initialize_tracing, shutdown_tracing


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    # Set up structured JSON logging
    structured_logging.setup_structured_logging()
    initialize_tracing()

    # Use AnnotationsProgressStorage to avoid conflicts with status updates
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = 0
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = 4

    # Start metrics HTTP server with health check endpoints
    health.start_server(int(os.getenv("METRICS_PORT", "8080")))
    health.set_ready(True)


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    """Stop reporting ready, close management API clients and flush spans."""
    health.set_ready(False)
    namespacestore.close_controller()
    shutdown_tracing()


def run() -> None:
    """Run the operator, watching WATCH_NAMESPACE or the whole cluster."""
    namespaces = [ns for ns in os.getenv("WATCH_NAMESPACE", "").split(",") if ns]
    kopf.run(clusterwide=not namespaces, namespaces=namespaces)
