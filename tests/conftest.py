import pytest

import auto_trace
from trace_tools import TRACE, diagnostic_context
from trace_tools.method_tracer import MethodTracer


@pytest.fixture(autouse=True)
def tracer(monkeypatch):
    """Give every test its own tracer so exception de-duplication starts clean."""
    fresh = MethodTracer()
    monkeypatch.setattr(auto_trace, "tracer", fresh)
    diagnostic_context.clear()
    yield fresh
    diagnostic_context.clear()


@pytest.fixture
def trace_log(caplog):
    caplog.set_level(TRACE)
    return caplog


@pytest.fixture
def trace_messages(trace_log):
    def messages():
        return [record.getMessage() for record in trace_log.records if record.levelno == TRACE]

    return messages


@pytest.fixture
def sample():
    from tests import traced_sample

    auto_trace.auto_instrument(traced_sample)
    return traced_sample
