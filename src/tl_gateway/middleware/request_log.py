"""Request correlation and logging middleware.

The ledger engine is called by the CRUD collaborators that own purchases,
contributions and readings. A caller may send its own ``X-Request-ID``; when
it is well formed it is reused, otherwise a short id is generated. The id is
stored on request.state (routers copy it into the ApiResponse envelope) and
echoed back in the ``X-Request-ID`` response header.

Log format:
    INFO [POST] /api/v1/meter-readings → 422 (18ms) req_a1b2c3d4e5f6
Responses with a 5xx status are logged at ERROR.
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_CALLER_REQUEST_ID = re.compile(r"^[A-Za-z0-9_.:-]{1,64}$")


def resolve_request_id(incoming: str | None) -> str:
    if incoming and _CALLER_REQUEST_ID.match(incoming):
        return incoming
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.log(
            logging.ERROR if response.status_code >= 500 else logging.INFO,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
