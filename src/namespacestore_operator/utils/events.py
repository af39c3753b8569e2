"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_CONNECTION_ADDED,
    EVENT_REASON_RESOURCE_CREATED,
    EVENT_REASON_RESOURCE_DELETED,
    EVENT_TYPE_NORMAL,
    EVENT_TYPE_WARNING,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = EVENT_TYPE_NORMAL,
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: The resource the event refers to
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_persistent_error(body: dict[str, Any], reason: str, message: str) -> None:
    """Emit a warning for an error that needs a spec change."""
    emit_event(body, reason, message, type_=EVENT_TYPE_WARNING)


def emit_mode_changed(body: dict[str, Any], severity: str, reason: str, message: str) -> None:
    """Emit a mode transition event with the mode table severity."""
    emit_event(body, reason, message, type_=severity)


def emit_connection_added(body: dict[str, Any], connection_name: str) -> None:
    """Emit external connection added event."""
    emit_event(body, EVENT_REASON_CONNECTION_ADDED, f"External connection {connection_name} added")


def emit_resource_created(body: dict[str, Any], resource_name: str) -> None:
    """Emit namespace resource created event."""
    emit_event(body, EVENT_REASON_RESOURCE_CREATED, f"Namespace resource {resource_name} created")


def emit_resource_deleted(body: dict[str, Any], resource_name: str) -> None:
    """Emit namespace resource deleted event."""
    emit_event(body, EVENT_REASON_RESOURCE_DELETED, f"Namespace resource {resource_name} deleted")
