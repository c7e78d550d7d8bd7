from opentelemetry import trace
import os, logging, time, json

from .sanitize import sanitize_value

SERVICE_NAME = os.getenv("SERVICE_NAME", "pubsub-output")
ENV = os.getenv("ENVIRONMENT", "local")

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
_logger = logging.getLogger(SERVICE_NAME)

def jlog(event: str = "", severity: str = "INFO", **fields):
    level = getattr(logging, severity, logging.INFO)
    if not _logger.isEnabledFor(level):
        return

    span = trace.get_current_span()
    ctx = span.get_span_context() if span else None
    trace_id = f"{ctx.trace_id:032x}" if ctx and ctx.trace_id else None
    span_id = f"{ctx.span_id:016x}" if ctx and ctx.span_id else None

    record = {
        "event": event,
        "severity": severity,
        "service": SERVICE_NAME,
        "env": ENV,
        "ts": time.time(),
        "trace_id": trace_id,
        "span_id": span_id,
    }
    record.update({k: sanitize_value(k, v) for k, v in fields.items()})
    # event fields can hold anything; fall back to str for non-JSON values
    _logger.log(level, json.dumps(record, ensure_ascii=False, default=str))
