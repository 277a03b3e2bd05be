from dotenv import load_dotenv, find_dotenv
import os

load_dotenv(find_dotenv(), override=True)

# TRACE turns method tracing on, anything above it leaves the tracer inert
TRACE_LOG_LEVEL = os.getenv("TRACE_LOG_LEVEL", "INFO")
TRACE_LOG_FILE = os.getenv("TRACE_LOG_FILE", "trace.log")

# level, thread and nesting only; trace messages carry class, method, file and line
TRACE_LOG_FORMAT = os.getenv("TRACE_LOG_FORMAT", "%(levelname)5s [%(threadName)s] %(ndc)s%(message)s")

TRACE_PACKAGES = [name.strip() for name in os.getenv("TRACE_PACKAGES", "").split(",") if name.strip()]

# frame depth used to guess the logger for calls that carry no owner information
TRACE_STACK_DEPTH = int(os.getenv("TRACE_STACK_DEPTH", "3"))
