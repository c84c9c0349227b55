"""Prometheus metrics for the Nginx Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "nginx_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "nginx_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

error_total = Counter(
    "nginx_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

# Deployment operation metrics
deployment_operations_total = Counter(
    "nginx_operator_deployment_operations_total",
    "Total number of managed Deployment writes",
    ["operation", "result"],
)

conflict_retries_total = Counter(
    "nginx_operator_conflict_retries_total",
    "Total number of update retries caused by resourceVersion conflicts",
)

# API call metrics
api_call_total = Counter(
    "nginx_operator_api_call_total",
    "Total number of Kubernetes API calls",
    ["operation", "result"],
)

api_call_duration_seconds = Histogram(
    "nginx_operator_api_call_duration_seconds",
    "Duration of Kubernetes API calls in seconds",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)
