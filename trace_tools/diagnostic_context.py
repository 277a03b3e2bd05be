"""Per-thread label stack used to indent nested trace output.

Works like log4j's NDC: the tracer pushes a label on method entry and pops it on
exit, and ``DiagnosticContextFilter`` makes the current stack available to log
formatters as ``%(ndc)s``.
"""

import logging
import threading


class _ContextStack(threading.local):
    def __init__(self):
        self.labels = []


_context = _ContextStack()


def push(label):
    _context.labels.append(label)


def pop():
    """Remove and return the innermost label, or an empty string if there is none."""
    if not _context.labels:
        return ""
    return _context.labels.pop()


def peek():
    if not _context.labels:
        return ""
    return _context.labels[-1]


def depth():
    return len(_context.labels)


def clear():
    _context.labels.clear()


def get():
    return "".join(_context.labels)


class DiagnosticContextFilter(logging.Filter):
    """Adds the calling thread's diagnostic context to every record as ``ndc``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.ndc = get()
        return True
