class TraceToolsError(RuntimeError):
    pass


class TraceError(TraceToolsError):
    """Raised when the tracer cannot work out which logger a call belongs to."""


class FieldAccessError(TraceToolsError):
    """Raised when a declared field of a domain object cannot be read."""
