"""
Request ID middleware for HTTP request tracing.

Every HTTP request (health, readiness, metrics) carries an X-Request-ID,
taken from the client when supplied, so log lines for it can be correlated.
"""

import uuid
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from logging_config import request_id_var

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Propagate or mint a request id.

    The id is exposed to log records through request_id_var for the
    duration of the request and echoed back in the response header.
    """

    def __init__(self, app, generator: Optional[Callable[[], str]] = None):
        super().__init__(app)
        self.generator = generator or (lambda: uuid.uuid4().hex)

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or self.generator()
        request.state.request_id = request_id

        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)
