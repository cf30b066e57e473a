"""Logging helpers.

A syslog-backed log facade with a local stderr fallback, plus the ASGI middleware
that binds request IDs into structlog contextvars.
"""

