"""
Middleware components for the event tracker stats server.

Provides:
- RequestContextMiddleware: Request tracing with X-Request-ID and X-User-Id
"""

from .request_id import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
]
