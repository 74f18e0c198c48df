"""
Request ID middleware for HTTP request tracing.

Every API response carries an X-Request-ID header, and every log line
written while the request is handled carries the same id.
"""

import uuid
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from logging_config import request_id_var


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Propagate the caller's X-Request-ID, or generate one.

    The id is stored on ``request.state`` and in the logging context
    variable for the duration of the request.
    """

    def __init__(
        self,
        app,
        header_name: str = "X-Request-ID",
        generator: Optional[Callable[[], str]] = None,
    ):
        super().__init__(app)
        self.header_name = header_name
        self.generator = generator or (lambda: uuid.uuid4().hex)

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(self.header_name) or self.generator()
        request.state.request_id = request_id

        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
            response.headers[self.header_name] = request_id
            return response
        finally:
            request_id_var.reset(token)
