# topicsweep/utils/telemetry.py
from __future__ import annotations
import contextlib, time
from dataclasses import dataclass
from typing import Optional, Iterator, Any

from fastapi import FastAPI
from opentelemetry import trace, metrics
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

from topicsweep.core.config import settings
import logging

logger = logging.getLogger("topicsweep.obs")


@dataclass
class ObsConfig:
    env: str = settings.ENV
    service_name: str = settings.OTEL_SERVICE_NAME or "topicsweep"
    service_version: str = settings.OTEL_SERVICE_VERSION or "0.1.0"
    sample_ratio: str | float = settings.OTEL_SAMPLE_RATIO
    enable_metrics: str | bool = settings.OTEL_ENABLE_METRICS

    betterstack_host: Optional[str] = (
        settings.BETTERSTACK_HOST
    )  # e.g. https://in-otel.betterstack.com
    betterstack_api_key: Optional[str] = settings.BETTERSTACK_API_KEY


_tracer = trace.get_tracer(__name__)
_step_hist = None


def to_float(x, default=1.0) -> float:
    try:
        v = float(x)
        return max(0.0, min(1.0, v))
    except (TypeError, ValueError):
        return default


def to_bool(x) -> bool:
    if isinstance(x, bool):
        return x
    return str(x).strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _join(base: str, path: str) -> str:
    base = base.rstrip("/")
    path = path if path.startswith("/") else "/" + path
    return base + path


def _build_exporters(cfg: ObsConfig, enable_metrics: bool):
    base = (cfg.betterstack_host or "http://localhost:4318").rstrip("/")
    traces_ep = _join(base, "/v1/traces")
    metrics_ep = _join(base, "/v1/metrics")
    headers = (
        {"Authorization": f"Bearer {cfg.betterstack_api_key}"}
        if cfg.betterstack_api_key
        else None
    )
    span_exp = OTLPSpanExporter(endpoint=traces_ep, headers=headers)
    metric_exp = (
        OTLPMetricExporter(endpoint=metrics_ep, headers=headers)
        if enable_metrics
        else None
    )
    logger.info("OTEL env=%s traces_ep=%s metrics_ep=%s", cfg.env, traces_ep, metrics_ep)
    return span_exp, metric_exp


def setup_observability(app: FastAPI) -> None:
    cfg = ObsConfig()
    sample_ratio = to_float(cfg.sample_ratio, 1.0)
    enable_metrics = to_bool(cfg.enable_metrics)

    resource = Resource.create(
        {
            "service.name": cfg.service_name,
            "service.version": cfg.service_version,
            "deployment.environment": cfg.env,
        }
    )
    tp = TracerProvider(
        resource=resource, sampler=ParentBased(TraceIdRatioBased(sample_ratio))
    )
    span_exporter, metric_exporter = _build_exporters(cfg, enable_metrics)
    tp.add_span_processor(BatchSpanProcessor(span_exporter))
    trace.set_tracer_provider(tp)

    global _step_hist
    if enable_metrics and metric_exporter:
        mp = MeterProvider(
            resource=resource,
            metric_readers=[PeriodicExportingMetricReader(metric_exporter)],
        )
        metrics.set_meter_provider(mp)
        _step_hist = metrics.get_meter("topicsweep.obs").create_histogram(
            "topicsweep.step.duration", unit="ms", description="Selection step duration"
        )

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls="^/health$|^/liveness$|^/readiness$|^/docs$",
    )
    LoggingInstrumentor().instrument(set_logging_format=True)


@contextlib.contextmanager
def step(name: str, **attrs: Any) -> Iterator[None]:
    start = time.perf_counter()
    with _tracer.start_as_current_span(name) as span:
        for k, v in attrs.items():
            if v is not None:
                span.set_attribute(f"topicsweep.{k}", v)
        try:
            yield
            span.set_attribute("topicsweep.success", True)
        except Exception as e:
            span.record_exception(e)
            span.set_attribute("topicsweep.success", False)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise
        finally:
            if _step_hist:
                _step_hist.record((time.perf_counter() - start) * 1000, {"step": name})
