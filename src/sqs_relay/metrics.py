"""
Prometheus metrics for the SQS relay.

Provides instrumentation for:
- Receive/delete volume and outcome
- Relay fan-out to workers
- Errors by operation and category
- Poll cycle duration
- Polling state and worker pool size
"""

from prometheus_client import Counter, Gauge, Histogram

messages_received_total = Counter(
    "sqs_messages_received_total",
    "Total number of messages returned by ReceiveMessage",
    ["queue"],
)

messages_deleted_total = Counter(
    "sqs_messages_deleted_total",
    "Total number of messages submitted to DeleteMessageBatch",
    ["queue", "status"],  # status: success, error
)

envelopes_relayed_total = Counter(
    "sqs_envelopes_relayed_total",
    "Total number of envelope deliveries to worker channels",
    ["kind", "status"],  # kind: raw, processed; status: success, error
)

sqs_errors_total = Counter(
    "sqs_errors_total",
    "Total number of failed queue calls",
    ["operation", "error_category"],
)

preprocessor_errors_total = Counter(
    "sqs_preprocessor_errors_total",
    "Total number of messages whose preprocessor raised",
)

poll_cycle_duration_seconds = Histogram(
    "sqs_poll_cycle_duration_seconds",
    "Time from ReceiveMessage start to DeleteMessageBatch completion for non-empty batches",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

polling_active = Gauge(
    "sqs_polling_active",
    "Polling state (1=ACTIVE, 0=INACTIVE)",
)

registered_workers = Gauge(
    "sqs_registered_workers",
    "Number of worker handles currently registered for relay",
)


def record_received(queue: str, count: int) -> None:
    if count:
        messages_received_total.labels(queue=queue).inc(count)


def record_deleted(queue: str, count: int, success: bool) -> None:
    status = "success" if success else "error"
    messages_deleted_total.labels(queue=queue, status=status).inc(count)


def record_relay(kind: str, success: bool) -> None:
    status = "success" if success else "error"
    envelopes_relayed_total.labels(kind=kind, status=status).inc()


def record_sqs_error(operation: str, error_category: str) -> None:
    sqs_errors_total.labels(operation=operation, error_category=error_category).inc()


def record_preprocessor_error() -> None:
    preprocessor_errors_total.inc()


def update_polling_state(active: bool) -> None:
    polling_active.set(1 if active else 0)


def update_registered_workers(count: int) -> None:
    registered_workers.set(count)
