"""Entry, exit and exception logging for intercepted calls.

The tracer does not decide what gets traced; an interception layer (see
``auto_trace.trace_calls``) builds a ``CallContext`` for every call and fires the
three hooks below. All output goes to a logger named after the class that owns the
traced method, at the ``TRACE`` level, so it costs nothing beyond the level check
when tracing is switched off.

Log records from here carry the tracer's own module/line, so the messages embed
the traced method's class, name, file and line themselves.
"""

import array
import enum
import inspect
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Optional

from trace_tools import diagnostic_context
from trace_tools.errors import TraceError

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

INDENT = " "

# array.array typecodes grouped by the primitive kind they hold
_ARRAY_KINDS = {
    "b": "byte",
    "B": "byte",
    "h": "short",
    "H": "short",
    "i": "int",
    "I": "int",
    "l": "long",
    "L": "long",
    "q": "long",
    "Q": "long",
    "u": "char",
    "w": "char",
    "f": "float",
    "d": "double",
}


def class_name(cls):
    return f"{cls.__module__}.{cls.__qualname__}"


def _render_elements(values):
    return "[" + ", ".join(str(value) for value in values) + "]"


def describe_value(value):
    """Return a ``(type_label, value_label)`` pair for an argument or return value."""
    if value is None:
        return "?", "null"
    if isinstance(value, array.array):
        kind = _ARRAY_KINDS.get(value.typecode)
        if kind is not None:
            return f"{kind}[]", _render_elements(value)
    elif isinstance(value, (bytes, bytearray)):
        return "byte[]", _render_elements(value)
    elif type(value) is tuple:
        return "Object[]", _render_elements(value)
    return type(value).__name__, str(value)


def _declaring_type(func):
    module = getattr(func, "__module__", None)
    if not module:
        return None
    owner = getattr(func, "__qualname__", "").rpartition(".")[0]
    return f"{module}.{owner}" if owner else module


def _returns_void(func):
    try:
        annotation = func.__annotations__.get("return", inspect.Signature.empty)
    except (AttributeError, NameError):
        # no annotations, or ones that cannot be evaluated at call time
        return False
    return annotation is None or annotation == "None"


@dataclass(frozen=True)
class CallContext:
    target_class: Optional[type]
    method_name: str
    arguments: tuple = ()
    source_file: str = "Unknown"
    source_line: int = -1
    declaring_type: Optional[str] = None
    returns_void: bool = False

    @classmethod
    def for_call(cls, wrapped, instance, args, kwargs):
        """Build the context for one call as seen by a wrapt wrapper."""
        func = getattr(wrapped, "__func__", wrapped)
        code = getattr(func, "__code__", None)

        if instance is None:
            target_class = None
        elif inspect.isclass(instance):
            # classmethod: the receiver is the class itself
            target_class = instance
        else:
            target_class = type(instance)

        return cls(
            target_class=target_class,
            method_name=func.__name__,
            arguments=tuple(args) + tuple(kwargs.values()),
            source_file=os.path.basename(code.co_filename) if code else "Unknown",
            source_line=code.co_firstlineno if code else -1,
            declaring_type=_declaring_type(func),
            returns_void=_returns_void(func),
        )


class TraceKind(enum.Enum):
    ENTRY = "Entry"
    EXIT = "Exit"
    EXCEPTION = "Exception"


def _clause(pair):
    type_label, value_label = pair
    return f"{{type={type_label}; value={value_label}}}"


@dataclass(frozen=True)
class TraceEvent:
    kind: TraceKind
    logger_name: str
    method_name: str
    source_file: str
    source_line: int
    arguments: tuple = ()
    return_value: Optional[tuple] = None
    exception: Optional[BaseException] = None

    @property
    def location(self) -> str:
        return f"{self.logger_name}.{self.method_name}({self.source_file}:{self.source_line})"

    @property
    def message(self) -> str:
        if self.kind is TraceKind.ENTRY:
            args = ", ".join(f"arg[{i}] {_clause(pair)}" for i, pair in enumerate(self.arguments))
            return f"Entry at {self.location} {args}".rstrip()
        if self.kind is TraceKind.EXIT:
            text = f" Exit at {self.location}"
            if self.return_value is not None:
                text += f" returned {_clause(self.return_value)}"
            return text
        return f"Exception at {self.location} "


class MethodTracer:
    """Writes trace events for intercepted calls.

    ``previous_throwable`` remembers the last exception logged so that an exception
    is only reported at the innermost traced frame it escapes from. It is shared by
    every thread using this tracer and is not synchronized; a concurrent exception
    on another thread can occasionally suppress or un-suppress a log line.
    """

    def __init__(self, stack_depth: int = 3):
        self.stack_depth = stack_depth
        self.previous_throwable: Optional[BaseException] = None

    def get_logger(self, context: CallContext) -> logging.Logger:
        if context.target_class is not None:
            return logging.getLogger(class_name(context.target_class))
        if context.declaring_type:
            return logging.getLogger(context.declaring_type)

        # Nothing identifies the owner, so take the module of a fixed frame up the
        # stack. With the usual wrapper that is the traced function's caller, which
        # is only a best guess.
        try:
            frame = sys._getframe(self.stack_depth)
        except ValueError as exc:
            raise TraceError(
                f"call stack is shallower than {self.stack_depth} frames, "
                f"cannot resolve a logger for {context.method_name}"
            ) from exc
        module_name = frame.f_globals.get("__name__")
        if not module_name:
            raise TraceError(f"frame {self.stack_depth} has no module name for {context.method_name}")
        return logging.getLogger(module_name)

    def _event(self, kind, log, context, **fields):
        return TraceEvent(
            kind=kind,
            logger_name=log.name,
            method_name=context.method_name,
            source_file=context.source_file,
            source_line=context.source_line,
            **fields,
        )

    def log_entry(self, context: CallContext) -> Optional[TraceEvent]:
        log = self.get_logger(context)
        if not log.isEnabledFor(TRACE):
            return None

        arguments = tuple(describe_value(arg) for arg in context.arguments)
        event = self._event(TraceKind.ENTRY, log, context, arguments=arguments)
        log.log(TRACE, event.message)

        diagnostic_context.push(INDENT)
        return event

    def log_normal_return(self, context: CallContext, return_value: Any = None) -> Optional[TraceEvent]:
        log = self.get_logger(context)
        if not log.isEnabledFor(TRACE):
            return None

        diagnostic_context.pop()

        returned = None if context.returns_void else describe_value(return_value)
        event = self._event(TraceKind.EXIT, log, context, return_value=returned)
        log.log(TRACE, event.message)
        return event

    def log_exception(self, context: CallContext, exception: BaseException) -> Optional[TraceEvent]:
        log = self.get_logger(context)
        if not log.isEnabledFor(TRACE):
            return None

        # the frame is unwinding either way, keep the indentation balanced
        diagnostic_context.pop()

        if exception is self.previous_throwable:
            return None
        self.previous_throwable = exception

        event = self._event(TraceKind.EXCEPTION, log, context, exception=exception)
        log.log(TRACE, event.message, exc_info=exception)
        return event
