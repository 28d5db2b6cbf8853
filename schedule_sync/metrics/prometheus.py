# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metric objects for HTTP traffic, PagerDuty calls and schedule operations.
Module-level singletons; label values stay low-cardinality (operation names, route templates).
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "schedule_sync_requests_total",
    "Total HTTP requests to schedule-sync",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "schedule_sync_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "schedule_sync_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Remote API Metrics (updated by the PagerDuty client) ──
REMOTE_CALLS = Counter(
    "schedule_sync_remote_calls_total",
    "Calls made to the remote scheduling service",
    ["operation", "outcome"],
)
REMOTE_LATENCY = Histogram(
    "schedule_sync_remote_call_duration_seconds",
    "Remote call latency in seconds",
    ["operation"],
)
REMOTE_RETRIES = Counter(
    "schedule_sync_remote_retries_total",
    "Retry attempts after a failed remote call",
    ["operation"],
)

# ── Business Metrics (updated by service layer only) ──
SCHEDULE_OPERATIONS = Counter(
    "schedule_sync_schedule_operations_total",
    "Schedule lifecycle operations",
    ["operation"],
)
LAYERS_ENDED = Counter(
    "schedule_sync_layers_ended_total",
    "Schedule layers soft-deleted by assigning an end timestamp",
)
DELETIONS_BLOCKED = Counter(
    "schedule_sync_deletions_blocked_total",
    "Schedule deletions refused because of open incidents",
)
POLICIES_DETACHED = Counter(
    "schedule_sync_escalation_policies_detached_total",
    "Escalation policies rewritten to stop referencing a deleted schedule",
)
MANAGED_SCHEDULES = Gauge(
    "schedule_sync_managed_schedules",
    "Number of schedules tracked in the state store",
)
