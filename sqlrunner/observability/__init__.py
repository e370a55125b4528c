"""Error log and query tracing."""

from sqlrunner.observability._errors import ErrorLog, ErrorRecord
from sqlrunner.observability._tracer import QueryTracer, TraceSnapshot

__all__ = ("ErrorLog", "ErrorRecord", "QueryTracer", "TraceSnapshot")
