"""Method tracing and structural domain objects."""

from trace_tools.domain_object import DomainObject, Field
from trace_tools.errors import FieldAccessError, TraceError, TraceToolsError
from trace_tools.method_tracer import (
    TRACE,
    CallContext,
    MethodTracer,
    TraceEvent,
    TraceKind,
    describe_value,
)

__all__ = [
    "TRACE",
    "CallContext",
    "DomainObject",
    "Field",
    "FieldAccessError",
    "MethodTracer",
    "TraceError",
    "TraceEvent",
    "TraceKind",
    "TraceToolsError",
    "describe_value",
]
