"""Structured logging configuration for the NamespaceStore Operator."""

import json
import logging
import os
import sys
from typing import Any

from .utils.errors import sanitize_dict

# Client libraries that log every request at INFO/DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "kubernetes.client.rest")


def setup_structured_logging(level: str | None = None) -> None:
    """Configure JSON-line logging on stdout.

    Args:
        level: Log level name, defaults to LOG_LEVEL or INFO
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_resource_event(
    logger: logging.Logger,
    controller: str,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    uid: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log one JSON line describing something that happened to a resource.

    Extra keyword fields are appended after sensitive values are redacted.
    """
    log_data = {
        "level": logging.getLevelName(level),
        "controller": controller,
        "resource": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "uid": uid,
        "event": event,
        "reason": reason,
        "message": message,
    }
    log_data.update(sanitize_dict(kwargs))
    logger.log(level, json.dumps(log_data, default=str))
