"""Shared HTTP helpers for the aiohttp-based API clients.

This module contains constants and utility functions used by the Reddit,
Telegram and GitHub clients to avoid code duplication.
"""

import ssl

import aiohttp
import certifi

# Default per-request timeout for outbound API calls (seconds)
DEFAULT_TIMEOUT = 30


def create_ssl_context() -> ssl.SSLContext:
    """Create an SSL context that verifies against the certifi bundle."""
    return ssl.create_default_context(cafile=certifi.where())


def client_timeout(seconds: float) -> aiohttp.ClientTimeout:
    """Build a total-request timeout for aiohttp calls."""
    return aiohttp.ClientTimeout(total=seconds)
