"""Utility functions for the NamespaceStore Operator."""

from .conditions import (
    get_condition,
    set_available_condition,
    set_error_condition,
    set_progressing_condition,
    update_condition,
)
from .errors import ErrorKind, ReconcileError, classify_error, sanitize_exception
from .events import emit_event
from .rate_limit import rate_limit_k8s, rate_limit_noobaa
from .secrets import read_secret_data

__all__ = [
    "update_condition",
    "get_condition",
    "set_available_condition",
    "set_progressing_condition",
    "set_error_condition",
    "ErrorKind",
    "ReconcileError",
    "classify_error",
    "sanitize_exception",
    "emit_event",
    "read_secret_data",
    "rate_limit_k8s",
    "rate_limit_noobaa",
]
