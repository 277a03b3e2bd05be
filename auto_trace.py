# auto_trace.py
import importlib
import inspect
import logging
import pkgutil

import wrapt

import trace_config
from trace_tools.diagnostic_context import DiagnosticContextFilter
from trace_tools.domain_object import DomainObject, Field
from trace_tools.method_tracer import CallContext, MethodTracer

tracer = MethodTracer(stack_depth=trace_config.TRACE_STACK_DEPTH)

# the tracing code itself is never instrumented
EXCLUDED_PACKAGES = ("trace_tools", __name__)
EXCLUDED_CLASSES = (DomainObject, Field)


def setup_logging(level=None, log_file=None):
    logging.basicConfig(filename=log_file or trace_config.TRACE_LOG_FILE,
                        level=level or trace_config.TRACE_LOG_LEVEL,
                        format=trace_config.TRACE_LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, DiagnosticContextFilter) for f in handler.filters):
            handler.addFilter(DiagnosticContextFilter())


@wrapt.decorator
def trace_calls(wrapped, instance, args, kwargs):
    context = CallContext.for_call(wrapped, instance, args, kwargs)
    tracer.log_entry(context)
    try:
        result = wrapped(*args, **kwargs)
    except BaseException as exc:
        tracer.log_exception(context, exc)
        raise
    tracer.log_normal_return(context, result)
    return result


def _is_excluded(module_name):
    return module_name.split(".")[0] in EXCLUDED_PACKAGES


def _is_traceable_name(name):
    # other dunders are called while rendering trace output itself
    return name == "__init__" or not (name.startswith("__") and name.endswith("__"))


def _instrument_class(cls):
    if cls in EXCLUDED_CLASSES:
        return 0
    # overrides of DomainObject hooks run while trace output is being rendered
    hooks = vars(DomainObject) if issubclass(cls, DomainObject) else {}
    count = 0
    for name, member in list(vars(cls).items()):
        if isinstance(member, wrapt.FunctionWrapper) or not _is_traceable_name(name) or name in hooks:
            continue
        if inspect.isfunction(member) or isinstance(member, (staticmethod, classmethod)):
            setattr(cls, name, trace_calls(member))
            count += 1
        elif inspect.isclass(member) and member.__qualname__.startswith(cls.__qualname__ + "."):
            count += _instrument_class(member)
    return count


def auto_instrument(module):
    """Wrap every function and class method defined in ``module`` with ``trace_calls``.

    Returns the number of callables wrapped. Members imported from other modules
    and members that are already wrapped are left alone.
    """
    if _is_excluded(module.__name__):
        return 0
    count = 0
    for name, obj in inspect.getmembers(module):
        if isinstance(obj, wrapt.FunctionWrapper) or getattr(obj, "__module__", None) != module.__name__:
            continue
        if inspect.isfunction(obj):
            setattr(module, name, trace_calls(obj))
            count += 1
        elif inspect.isclass(obj):
            count += _instrument_class(obj)
    return count


def instrument_packages(names=None):
    """Import and instrument the named modules, including all submodules of packages."""
    count = 0
    for name in trace_config.TRACE_PACKAGES if names is None else names:
        module = importlib.import_module(name)
        count += auto_instrument(module)
        if hasattr(module, "__path__"):
            for info in pkgutil.walk_packages(module.__path__, prefix=f"{name}."):
                count += auto_instrument(importlib.import_module(info.name))
    logging.getLogger(__name__).debug("instrumented %d callables", count)
    return count
