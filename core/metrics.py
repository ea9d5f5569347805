"""
Prometheus metrics for the license workflow service.

Custom metrics for the application state machine and notification recovery.
"""

from prometheus_client import Counter, Histogram

# State machine metrics
application_transitions_total = Counter(
    "application_transitions_total",
    "Total application status transitions",
    ["from_status", "to_status"],
)

invalid_transitions_total = Counter(
    "invalid_transitions_total",
    "Total rejected status transition attempts",
    ["from_status", "to_status"],
)

# Notification failure metrics
dlq_messages_total = Counter(
    "dlq_messages_total",
    "Total dead-letter messages by processing outcome",
    ["outcome"],
)

notification_deliveries_total = Counter(
    "notification_deliveries_total",
    "Total notification messages by delivery outcome",
    ["outcome"],
)

notification_failures_total = Counter(
    "notification_failures_total",
    "Total notification delivery failures recorded",
)

notification_retries_total = Counter(
    "notification_retries_total",
    "Total notification retries",
    ["mode", "forced"],
)

notification_retry_limit_reached_total = Counter(
    "notification_retry_limit_reached_total",
    "Total applications whose notification failures reached the retry limit",
)

batch_retry_duration_seconds = Histogram(
    "batch_retry_duration_seconds",
    "Batch retry duration in seconds",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)
