"""Logging and tracing for the Niche Scraper pipeline.

setup_logging / run_context:
    Console and rotating file logs tagged with the current run id.

setup_tracing / trace_operation:
    Optional Logfire spans around pipeline stages.
"""

from observability.logging import run_context, setup_logging
from observability.tracing import setup_tracing, trace_operation

__all__ = [
    "setup_logging",
    "run_context",
    "setup_tracing",
    "trace_operation",
]
