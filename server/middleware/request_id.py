"""
Request context middleware.

Generates or propagates the X-Request-ID header and binds the request ID
and the caller's user ID (X-User-Id, set by the upstream gateway) to the
logging context vars for the duration of the request.
"""

import uuid
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from logging_config import request_id_var, user_id_var

USER_ID_HEADER = "X-User-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    HTTP middleware for request tracing.

    - Extracts X-Request-ID from incoming request headers, or generates one
    - Sets request_id and user_id in context vars for logging
    - Adds X-Request-ID to response headers
    """

    def __init__(
        self,
        app,
        header_name: str = "X-Request-ID",
        generator: Optional[Callable[[], str]] = None,
    ):
        super().__init__(app)
        self.header_name = header_name
        self.generator = generator or (lambda: str(uuid.uuid4()))

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(self.header_name) or self.generator()
        request.state.request_id = request_id

        request_token = request_id_var.set(request_id)
        user_token = user_id_var.set(request.headers.get(USER_ID_HEADER) or None)
        try:
            response = await call_next(request)
            response.headers[self.header_name] = request_id
            return response
        finally:
            user_id_var.reset(user_token)
            request_id_var.reset(request_token)
