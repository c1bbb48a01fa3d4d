"""OpenTelemetry tracing and metrics middleware.

Creates HTTP server spans and metrics with semantic conventions for each
request, tagged with the name of the matched route.

Install with: uv add "namedmux[otel]"
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from collections.abc import Callable

    from namedmux.types import (
        ASGIHandler,
        HTTPReceive,
        HTTPScope,
        HTTPSend,
        Message,
    )

try:
    from opentelemetry import metrics, trace
    from opentelemetry.propagate import extract
    from opentelemetry.trace import (
        SpanKind,
        StatusCode,
        TracerProvider,
    )
except ImportError as e:
    msg = (
        "OpenTelemetry middleware requires the 'otel' extra. "
        "Install with: uv add 'namedmux[otel]'"
    )
    raise ImportError(msg) from e

from namedmux.tree import http_route, path_params, route_name

ROUTE_NAME_ATTRIBUTE = "namedmux.route.name"

_DURATION_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.075,
    0.1,
    0.25,
    0.5,
    0.75,
    1.0,
    2.5,
    5.0,
    7.5,
    10.0,
)


def otel(
    *,
    tracer_provider: TracerProvider | None = None,
    meter_provider: metrics.MeterProvider | None = None,
) -> Callable[[ASGIHandler], ASGIHandler]:
    """Create OpenTelemetry tracing and metrics middleware.

    Creates server spans and metrics with HTTP semantic conventions for each
    HTTP request. Websocket connections pass through without instrumentation.
    Extracts trace context from incoming request headers (e.g. ``traceparent``).

    Metrics emitted:
        - ``http.server.request.duration`` (histogram, seconds)
        - ``http.server.active_requests`` (up-down counter)

    Example:
        NamedRouter().use(otel()).route("index", "/", index)
    """
    tracer = trace.get_tracer("namedmux", tracer_provider=tracer_provider)
    meter = metrics.get_meter("namedmux", meter_provider=meter_provider)
    duration_histogram = meter.create_histogram(
        "http.server.request.duration",
        unit="s",
        description="Duration of HTTP server requests.",
        explicit_bucket_boundaries_advisory=_DURATION_BUCKETS,
    )
    active_requests_counter = meter.create_up_down_counter(
        "http.server.active_requests",
        unit="{request}",
        description="Number of active HTTP server requests.",
    )

    def middleware(handler: ASGIHandler) -> ASGIHandler:
        async def traced_handler(
            scope: HTTPScope, receive: HTTPReceive, send: HTTPSend
        ) -> None:
            if scope["type"] != "http":  # passthrough websocket
                await handler(scope, receive, send)  # ty: ignore[invalid-argument-type]
                return

            headers = {
                k.decode("latin-1").lower(): v.decode("latin-1")
                for k, v in scope["headers"]
            }
            ctx = extract(headers)

            # set by the Router before middleware runs
            route = http_route.get("")
            name = route_name.get(None)

            method = scope["method"]
            span_name = f"{method} {route}" if route else method

            attributes: dict[str, str | int] = {
                "http.request.method": method,
                "url.path": scope["path"],
                "url.scheme": scope["scheme"],
                "network.protocol.version": scope["http_version"],
            }
            if scope["server"] is not None:
                attributes["server.address"] = scope["server"][0]
                if scope["server"][1] is not None:
                    attributes["server.port"] = scope["server"][1]
            if scope["client"] is not None:
                attributes["client.address"] = scope["client"][0]
            if route:
                attributes["http.route"] = route
            if name is not None:
                attributes[ROUTE_NAME_ATTRIBUTE] = name
            if scope["query_string"]:
                attributes["url.query"] = scope["query_string"].decode("latin-1")
            user_agent = headers.get("user-agent")
            if user_agent is not None:
                attributes["user_agent.original"] = user_agent
            # not part of semantic conventions but path params are useful
            for key, value in path_params.get({}).items():
                attributes[f"http.route.param.{key}"] = value

            active_attrs: dict[str, str | int] = {
                "http.request.method": method,
                "url.scheme": scope["scheme"],
            }
            if route:
                active_attrs["http.route"] = route

            status: int | None = None

            async def capture_status(message: Message) -> None:
                nonlocal status
                if message["type"] == "http.response.start":
                    status = cast("int", message["status"])
                await send(message)

            active_requests_counter.add(1, active_attrs)
            start = time.perf_counter()

            with tracer.start_as_current_span(
                span_name,
                context=ctx,
                kind=SpanKind.SERVER,
                attributes=attributes,
                record_exception=True,
                set_status_on_exception=True,
            ) as span:
                try:
                    await handler(scope, receive, capture_status)  # ty: ignore[invalid-argument-type]
                finally:
                    duration = time.perf_counter() - start
                    active_requests_counter.add(-1, active_attrs)
                    duration_attrs = dict(active_attrs)
                    if status is not None:
                        span.set_attribute("http.response.status_code", status)
                        duration_attrs["http.response.status_code"] = status
                        if not route:
                            span.update_name(f"{method} {status}")
                        if status >= 500:
                            span.set_status(StatusCode.ERROR)
                    duration_histogram.record(duration, duration_attrs)

        return traced_handler

    return middleware
