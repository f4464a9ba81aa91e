"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging
from typing import Optional

from opentelemetry import trace, metrics
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry
import structlog

from .config import settings

SERVICE_NAME = "tripqueue-api"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Waiting list metrics
WAITLIST_JOINS = Counter(
    'waitlist_joins_total',
    'Customers added to a waiting list',
    ['resurrected'],
    registry=REGISTRY
)

WAITLIST_EXITS = Counter(
    'waitlist_exits_total',
    'Entries that left a waiting list',
    ['status'],
    registry=REGISTRY
)

TURNS_GRANTED = Counter(
    'waitlist_turns_granted_total',
    'Booking turns granted to waiting customers',
    registry=REGISTRY
)

TURNS_EXPIRED = Counter(
    'waitlist_turns_expired_total',
    'Booking turns that lapsed unused',
    registry=REGISTRY
)

ALLOCATION_SKIPS = Counter(
    'waitlist_allocation_skips_total',
    'Waiting entries passed over during allocation',
    ['reason'],
    registry=REGISTRY
)

ACTIVE_ENTRIES = Gauge(
    'waitlist_active_entries',
    'Waiting or notified entries per trip',
    ['trip_id'],
    registry=REGISTRY
)

BOOKING_WINDOW_HOURS = Histogram(
    'waitlist_booking_window_hours',
    'Booking window granted with each turn',
    buckets=(2, 4, 8, 12, 24, 36, 48),
    registry=REGISTRY
)

NOTIFICATIONS = Counter(
    'waitlist_notifications_total',
    'Notifications handed to the notifier',
    ['kind', 'outcome'],
    registry=REGISTRY
)

# Booking metrics
BOOKINGS_CONFIRMED = Counter(
    'bookings_confirmed_total',
    'Total bookings confirmed',
    registry=REGISTRY
)

BOOKINGS_CANCELLED = Counter(
    'bookings_cancelled_total',
    'Total bookings cancelled',
    registry=REGISTRY
)

# Sweeper metrics
SWEEPER_RUNS = Counter(
    'sweeper_runs_total',
    'Expiry sweeper passes',
    registry=REGISTRY
)

SWEEPER_TRIP_FAILURES = Counter(
    'sweeper_trip_failures_total',
    'Trips whose expiry processing failed during a sweep',
    registry=REGISTRY
)

TRIP_CONFLICT_RETRIES = Counter(
    'trip_transaction_conflict_retries_total',
    'Per-trip transactions retried after a serialization conflict',
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": "1.0.0",
        "environment": settings.environment,
    })


def setup_tracing(otlp_endpoint: Optional[str] = None):
    """Setup OpenTelemetry tracing."""
    trace.set_tracer_provider(TracerProvider(resource=_resource()))

    if otlp_endpoint:
        span_processor = BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint))
        trace.get_tracer_provider().add_span_processor(span_processor)

    return trace.get_tracer(__name__)


def setup_metrics(otlp_endpoint: Optional[str] = None):
    """Setup OpenTelemetry metrics."""
    if otlp_endpoint:
        reader = PeriodicExportingMetricReader(
            exporter=OTLPMetricExporter(endpoint=otlp_endpoint),
            export_interval_millis=60000,
        )
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine=None):
    """Instrument SQLAlchemy with OpenTelemetry."""
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
    else:
        SQLAlchemyInstrumentor().instrument()


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration_seconds: float):
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration_seconds)

    @staticmethod
    def record_join(resurrected: bool):
        """Record a customer joining a waiting list."""
        WAITLIST_JOINS.labels(resurrected=str(resurrected).lower()).inc()

    @staticmethod
    def record_exit(status: str):
        """Record an entry leaving a waiting list with the given terminal status."""
        WAITLIST_EXITS.labels(status=status).inc()

    @staticmethod
    def record_turn_granted(booking_window_hours: int):
        TURNS_GRANTED.inc()
        BOOKING_WINDOW_HOURS.observe(booking_window_hours)

    @staticmethod
    def record_turn_expired(count: int = 1):
        TURNS_EXPIRED.inc(count)

    @staticmethod
    def record_allocation_skip(reason: str):
        ALLOCATION_SKIPS.labels(reason=reason).inc()

    @staticmethod
    def set_active_entries(trip_id: str, count: int):
        """Set the number of active waiting list entries for a trip."""
        ACTIVE_ENTRIES.labels(trip_id=trip_id).set(count)

    @staticmethod
    def record_notification(kind: str, outcome: str):
        NOTIFICATIONS.labels(kind=kind, outcome=outcome).inc()

    @staticmethod
    def record_booking_confirmed():
        BOOKINGS_CONFIRMED.inc()

    @staticmethod
    def record_booking_cancelled():
        BOOKINGS_CANCELLED.inc()

    @staticmethod
    def record_sweep(failed_trips: int = 0):
        SWEEPER_RUNS.inc()
        if failed_trips:
            SWEEPER_TRIP_FAILURES.inc(failed_trips)

    @staticmethod
    def record_conflict_retry():
        TRIP_CONFLICT_RETRIES.inc()


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()

