"""Prometheus metrics for the NamespaceStore Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "namespacestore_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "namespacestore_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

phase_transitions_total = Counter(
    "namespacestore_operator_phase_transitions_total",
    "Total number of phase transitions published",
    ["phase"],
)

error_total = Counter(
    "namespacestore_operator_error_total",
    "Total number of classified reconciliation errors",
    ["kind", "error_kind", "reason"],
)

# Remote connection metrics
connection_operations_total = Counter(
    "namespacestore_operator_connection_operations_total",
    "Total number of external connection operations",
    ["operation", "result"],
)

namespace_resource_operations_total = Counter(
    "namespacestore_operator_namespace_resource_operations_total",
    "Total number of namespace resource operations",
    ["operation", "result"],
)

# Configuration drift detection metrics
drift_detected_total = Counter(
    "namespacestore_operator_drift_detected_total",
    "Total number of connection drift detections",
    ["kind"],
)

# API call metrics
api_call_total = Counter(
    "namespacestore_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "namespacestore_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "namespacestore_operator_rate_limit_hits_total",
    "Total number of rate limit hits",
    ["api_type"],
)
