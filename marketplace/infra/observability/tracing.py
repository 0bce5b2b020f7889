"""
OpenTelemetry Tracing

Configures an OpenTelemetry tracer provider for the marketplace services.
Spans are created around order placement and commission recording.
"""

import logging
from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider

logger = logging.getLogger(__name__)

_initialized = False


def setup_tracing(service_name: str = "bazaar-backend", enable: bool = True) -> None:
    """
    Initialize OpenTelemetry tracing.

    Args:
        service_name: Name of the service for tracing
        enable: Enable/disable tracing
    """
    global _initialized

    if _initialized:
        logger.warning("Tracing already initialized. Skipping.")
        return

    if not enable:
        logger.info("Tracing disabled via configuration")
        return

    try:
        resource = Resource(attributes={SERVICE_NAME: service_name})
        trace.set_tracer_provider(TracerProvider(resource=resource))
        _initialized = True
        logger.info(f"OpenTelemetry tracing initialized for service: {service_name}")
    except Exception as e:
        logger.error(f"Failed to initialize tracing: {e}")


def get_tracer(name: str = __name__) -> trace.Tracer:
    """Get tracer instance for creating custom spans."""
    return trace.get_tracer(name)


def add_span_attributes(span: trace.Span, **attributes) -> None:
    """
    Add custom attributes to a span.

    Example:
        with tracer.start_as_current_span("create_order") as span:
            add_span_attributes(span, order_id=order.id, item_count=3)
    """
    for key, value in attributes.items():
        span.set_attribute(key, str(value))

