"""Monitoring and observability setup.

Tracing and metrics are exported over OTLP when ``TELEMETRY_ENABLED`` is
true. With telemetry disabled the OpenTelemetry API falls back to its no-op
providers, so the instruments below can be used unconditionally.

Exemplars are attached automatically to the histograms
(checkout_amount_histogram, pix_charge_duration_histogram) when they are
recorded inside an active trace.
"""
import logging
from opentelemetry import trace, metrics
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

from config import OTEL_EXPORTER_OTLP_ENDPOINT, PYROSCOPE_SERVER, SERVICE_NAME, TELEMETRY_ENABLED

logger = logging.getLogger(__name__)


def init_tracing() -> trace.Tracer:
    """
    Initialize OpenTelemetry tracing.

    Returns:
        Tracer instance
    """
    if TELEMETRY_ENABLED:
        resource = Resource.create({"service.name": SERVICE_NAME})

        tracer_provider = TracerProvider(resource=resource)
        otlp_span_exporter = OTLPSpanExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_span_exporter))
        trace.set_tracer_provider(tracer_provider)

        logger.info(f"Tracing initialized with endpoint: {OTEL_EXPORTER_OTLP_ENDPOINT}")

    return trace.get_tracer(__name__)


def init_metrics() -> metrics.Meter:
    """
    Initialize OpenTelemetry metrics.

    Returns:
        Meter instance
    """
    if TELEMETRY_ENABLED:
        resource = Resource.create({"service.name": SERVICE_NAME})

        otlp_metric_reader = PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True),
            export_interval_millis=5000
        )
        metrics.set_meter_provider(MeterProvider(
            resource=resource,
            metric_readers=[otlp_metric_reader]
        ))

        logger.info("Metrics initialized with OTLP exporter")

    return metrics.get_meter(__name__)


def init_profiling() -> None:
    """Initialize Pyroscope profiling (needs the ``profiling`` extra)."""
    if not TELEMETRY_ENABLED:
        return
    try:
        import pyroscope

        pyroscope.configure(
            application_name=SERVICE_NAME,
            server_address=PYROSCOPE_SERVER,
            tags={"env": "demo"}
        )
        logger.info(f"Profiling initialized with server: {PYROSCOPE_SERVER}")
    except Exception as e:
        logger.warning(f"Failed to initialize profiling: {e}")


# Initialize tracer and meter
tracer = init_tracing()
meter = init_metrics()

# Cart metrics
cart_mutations_counter = meter.create_counter(
    "storefront.cart.mutations",
    description="Cart store dispatches by action type",
    unit="1"
)

cart_restores_counter = meter.create_counter(
    "storefront.cart.restores",
    description="Carts rebuilt from a saved snapshot",
    unit="1"
)

# Checkout funnel
checkout_counter = meter.create_counter(
    "storefront.checkouts",
    description="Total number of checkout attempts by outcome",
    unit="1"
)

checkout_amount_histogram = meter.create_histogram(
    "storefront.checkout.amount",
    description="Checkout amount in BRL",
    unit="BRL"
)

# PIX payments
pix_charges_counter = meter.create_counter(
    "storefront.pix.charges",
    description="PIX charge requests by outcome",
    unit="1"
)

pix_charge_duration_histogram = meter.create_histogram(
    "storefront.pix.charge.duration",
    description="PIX provider charge request duration",
    unit="s"
)

webhook_events_counter = meter.create_counter(
    "storefront.pix.webhook_events",
    description="PIX webhook notifications by payment status",
    unit="1"
)

confirmation_emails_counter = meter.create_counter(
    "storefront.emails.order_confirmation",
    description="Order confirmation emails by outcome",
    unit="1"
)

# Admin
order_status_transitions_counter = meter.create_counter(
    "storefront.orders.status_transitions",
    description="Order status changes by source and target status",
    unit="1"
)

# Security monitoring metrics
auth_failures_counter = meter.create_counter(
    "storefront.auth.failures",
    description="Total number of authentication failures",
    unit="1"
)

auth_attempts_counter = meter.create_counter(
    "storefront.auth.attempts",
    description="Total number of authentication attempts",
    unit="1"
)

route_redirects_counter = meter.create_counter(
    "storefront.routes.redirects",
    description="Requests redirected by route protection",
    unit="1"
)
