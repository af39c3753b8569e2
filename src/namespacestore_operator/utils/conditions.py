"""Utilities for managing Kubernetes conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    COND_AVAILABLE,
    COND_DEGRADED,
    COND_PROGRESSING,
    COND_UPGRADEABLE,
)

STATUS_TRUE = "True"
STATUS_FALSE = "False"
STATUS_UNKNOWN = "Unknown"


def update_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    now: str | None = None,
) -> list[dict[str, Any]]:
    """Update or add a condition to the conditions list.

    Args:
        conditions: List of existing conditions
        condition_type: Type of condition
        status: Status of condition ("True", "False", "Unknown")
        reason: Reason for the condition
        message: Human-readable message
        now: Timestamp to record (defaults to the current UTC time)

    Returns:
        Updated list of conditions
    """
    now = now or datetime.now(timezone.utc).isoformat()

    existing_idx = None
    for idx, cond in enumerate(conditions):
        if cond.get("type") == condition_type:
            existing_idx = idx
            break

    new_condition = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
        "lastHeartbeatTime": now,
        "lastTransitionTime": now,
    }

    if existing_idx is not None:
        existing = conditions[existing_idx]
        # Only update lastTransitionTime if status changed
        if existing.get("status") == status:
            new_condition["lastTransitionTime"] = existing.get("lastTransitionTime", now)
        conditions[existing_idx] = new_condition
    else:
        conditions.append(new_condition)

    return conditions


def _set_conditions(
    conditions: list[dict[str, Any]],
    statuses: dict[str, str],
    reason: str,
    message: str,
) -> list[dict[str, Any]]:
    now = datetime.now(timezone.utc).isoformat()
    for condition_type, status in statuses.items():
        conditions = update_condition(conditions, condition_type, status, reason, message, now)
    return conditions


def set_available_condition(
    conditions: list[dict[str, Any]],
    reason: str,
    message: str,
) -> list[dict[str, Any]]:
    """Set the conditions of a resource that is ready."""
    return _set_conditions(
        conditions,
        {
            COND_AVAILABLE: STATUS_TRUE,
            COND_PROGRESSING: STATUS_FALSE,
            COND_DEGRADED: STATUS_FALSE,
            COND_UPGRADEABLE: STATUS_TRUE,
        },
        reason,
        message,
    )


def set_progressing_condition(
    conditions: list[dict[str, Any]],
    reason: str,
    message: str,
) -> list[dict[str, Any]]:
    """Set the conditions of a resource that is still converging."""
    return _set_conditions(
        conditions,
        {
            COND_AVAILABLE: STATUS_FALSE,
            COND_PROGRESSING: STATUS_TRUE,
            COND_DEGRADED: STATUS_FALSE,
            COND_UPGRADEABLE: STATUS_FALSE,
        },
        reason,
        message,
    )


def set_error_condition(
    conditions: list[dict[str, Any]],
    reason: str,
    message: str,
) -> list[dict[str, Any]]:
    """Set the conditions of a resource that was rejected."""
    return _set_conditions(
        conditions,
        {
            COND_AVAILABLE: STATUS_UNKNOWN,
            COND_PROGRESSING: STATUS_FALSE,
            COND_DEGRADED: STATUS_TRUE,
            COND_UPGRADEABLE: STATUS_UNKNOWN,
        },
        reason,
        message,
    )


def get_condition(conditions: list[dict[str, Any]], condition_type: str) -> dict[str, Any] | None:
    """Return the condition of the given type, if present."""
    for cond in conditions:
        if cond.get("type") == condition_type:
            return cond
    return None
