"""Optional Logfire tracing for pipeline stages.

When ENABLE_LOGFIRE is set, each pipeline stage runs inside a Logfire span
and PydanticAI model calls are instrumented automatically. Without it,
``trace_operation`` only times the block at DEBUG level.

Requirements:
    pip install 'niche-scraper[tracing]'
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

logger = logging.getLogger(__name__)


@dataclass
class TracingContext:
    """Process-wide tracing state."""

    enabled: bool = False
    service_name: str = "niche-scraper"
    configured: bool = False


_context = TracingContext()


def setup_tracing(
    enabled: bool = False,
    service_name: str = "niche-scraper",
    token: str = "",
) -> TracingContext:
    """Configure Logfire if enabled and installed."""
    _context.enabled = enabled
    _context.service_name = service_name

    if not enabled:
        logger.debug("Tracing disabled")
        return _context

    try:
        import logfire
    except ImportError:
        logger.warning("Logfire not installed | tracing disabled")
        _context.enabled = False
        return _context

    try:
        logfire.configure(service_name=service_name, token=token or None)
        logfire.instrument_pydantic_ai()
    except Exception as e:
        logger.error("Logfire setup failed | error=%s", e)
        _context.enabled = False
        return _context

    _context.configured = True
    logger.info("Logfire tracing enabled | service=%s", service_name)
    return _context


@contextmanager
def trace_operation(name: str, attributes: dict[str, Any] | None = None) -> Iterator[dict[str, Any]]:
    """Run a block inside a span.

    Yields a dict; keys added to it become span attributes on exit.
    """
    start = time.perf_counter()
    result_attrs: dict[str, Any] = {}
    try:
        if _context.enabled and _context.configured:
            import logfire

            with logfire.span(name, **(attributes or {})) as span:
                yield result_attrs
                for key, value in result_attrs.items():
                    span.set_attribute(key, value)
        else:
            yield result_attrs
    finally:
        logger.debug("Operation '%s' finished in %.2fs", name, time.perf_counter() - start)
