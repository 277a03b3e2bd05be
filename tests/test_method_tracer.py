import logging
from array import array

import pytest

from trace_tools import TRACE, CallContext, TraceError, TraceKind, diagnostic_context
from trace_tools.method_tracer import MethodTracer, class_name, describe_value


class Orders:
    pass


def _context(*arguments, returns_void=False):
    return CallContext(
        target_class=Orders,
        method_name="place",
        arguments=arguments,
        source_file="orders.py",
        source_line=42,
        returns_void=returns_void,
    )


def _location():
    return f"{class_name(Orders)}.place(orders.py:42)"


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, ("?", "null")),
        (array("i", [1, 2, 3]), ("int[]", "[1, 2, 3]")),
        (array("q", [7]), ("long[]", "[7]")),
        (array("h", []), ("short[]", "[]")),
        (array("d", [1.5, 2.0]), ("double[]", "[1.5, 2.0]")),
        (b"\x01\x02", ("byte[]", "[1, 2]")),
        ((1, "a"), ("Object[]", "[1, a]")),
        ("abc", ("str", "abc")),
        ([1, 2], ("list", "[1, 2]")),
        (3, ("int", "3")),
    ],
)
def test_describe_value(value, expected):
    assert describe_value(value) == expected


def test_entry_message_lists_arguments_without_trailing_separator(tracer, trace_messages):
    event = tracer.log_entry(_context("a", 2))

    assert event.kind is TraceKind.ENTRY
    assert trace_messages() == [
        f"Entry at {_location()} arg[0] {{type=str; value=a}}, arg[1] {{type=int; value=2}}"
    ]


def test_entry_message_for_int_array(tracer, trace_messages):
    tracer.log_entry(_context(array("i", [1, 2, 3])))

    assert "arg[0] {type=int[]; value=[1, 2, 3]}" in trace_messages()[0]


def test_entry_without_arguments(tracer, trace_messages):
    tracer.log_entry(_context())

    assert trace_messages() == [f"Entry at {_location()}"]


def test_entry_and_exit_balance_the_diagnostic_context(tracer, trace_log):
    tracer.log_entry(_context())
    assert diagnostic_context.depth() == 1

    tracer.log_normal_return(_context(), None)
    assert diagnostic_context.depth() == 0


def test_void_exit_has_no_returned_clause(tracer, trace_messages):
    tracer.log_normal_return(_context(returns_void=True), None)

    assert trace_messages() == [f" Exit at {_location()}"]


def test_exit_returning_none(tracer, trace_messages):
    tracer.log_normal_return(_context(), None)

    assert trace_messages() == [f" Exit at {_location()} returned {{type=?; value=null}}"]


def test_exit_returning_value(tracer, trace_messages):
    event = tracer.log_normal_return(_context(), 12)

    assert event.return_value == ("int", "12")
    assert trace_messages()[0].endswith("returned {type=int; value=12}")


def test_exception_logged_once_per_instance(tracer, trace_log):
    error = ValueError("bad order")

    first = tracer.log_exception(_context(), error)
    second = tracer.log_exception(_context(), error)

    assert first.kind is TraceKind.EXCEPTION
    assert second is None
    records = [r for r in trace_log.records if r.levelno == TRACE]
    assert len(records) == 1
    assert records[0].getMessage() == f"Exception at {_location()} "
    assert records[0].exc_info[1] is error
    assert tracer.previous_throwable is error


def test_different_exception_instances_are_each_logged(tracer, trace_messages):
    tracer.log_exception(_context(), ValueError("one"))
    tracer.log_exception(_context(), ValueError("two"))

    assert len(trace_messages()) == 2


def test_exception_pops_diagnostic_context_even_when_suppressed(tracer, trace_log):
    error = RuntimeError("boom")
    tracer.log_entry(_context())
    tracer.log_entry(_context())

    tracer.log_exception(_context(), error)
    tracer.log_exception(_context(), error)

    assert diagnostic_context.depth() == 0


def test_disabled_trace_does_nothing(tracer, caplog):
    caplog.set_level(logging.INFO)

    assert tracer.log_entry(_context("x")) is None
    assert tracer.log_normal_return(_context(), 1) is None
    assert tracer.log_exception(_context(), ValueError()) is None

    assert caplog.records == []
    assert diagnostic_context.depth() == 0
    assert tracer.previous_throwable is None


def test_logger_named_after_target_class(tracer):
    assert tracer.get_logger(_context()).name == class_name(Orders)


def test_logger_falls_back_to_declaring_type(tracer):
    context = CallContext(target_class=None, method_name="helper", declaring_type="shop.billing")

    assert tracer.get_logger(context).name == "shop.billing"


def test_logger_falls_back_to_stack_inspection():
    context = CallContext(target_class=None, method_name="helper")

    # frame 1 above get_logger is this test function
    assert MethodTracer(stack_depth=1).get_logger(context).name == __name__


def test_logger_resolution_fails_without_a_usable_frame():
    context = CallContext(target_class=None, method_name="helper")

    with pytest.raises(TraceError):
        MethodTracer(stack_depth=100_000).get_logger(context)


def _annotated(order_id, *, priority=0) -> None:
    pass


def _unannotated(order_id):
    return order_id


def test_call_context_for_function():
    context = CallContext.for_call(_annotated, None, (5,), {"priority": 2})

    assert context.target_class is None
    assert context.method_name == "_annotated"
    assert context.arguments == (5, 2)
    assert context.source_file == "test_method_tracer.py"
    assert context.source_line == _annotated.__code__.co_firstlineno
    assert context.declaring_type == __name__
    assert context.returns_void is True


def test_call_context_for_method():
    orders = Orders()
    context = CallContext.for_call(_unannotated, orders, (1,), {})

    assert context.target_class is Orders
    assert context.returns_void is False


def test_call_context_for_classmethod_receiver():
    context = CallContext.for_call(_unannotated, Orders, (1,), {})

    assert context.target_class is Orders
