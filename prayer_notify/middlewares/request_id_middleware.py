import re
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from prayer_notify.utils.context import reset_request_id, set_request_id

REQUEST_ID_HEADER = "X-Request-ID"
# Set by Cloud Tasks on every delivery attempt of an HTTP task
CLOUD_TASKS_NAME_HEADER = "X-CloudTasks-TaskName"

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.:-]{1,128}$")


def _incoming_request_id(request: Request) -> Optional[str]:
    for header in (REQUEST_ID_HEADER, CLOUD_TASKS_NAME_HEADER):
        value = request.headers.get(header)
        if value and _SAFE_ID.match(value):
            return value
    return None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Give every request an ID shared by its log lines and its response.

    A caller-supplied X-Request-ID wins; queued deliveries fall back to their
    Cloud Tasks task name so dispatch logs line up with the scheduled task.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _incoming_request_id(request) or str(uuid.uuid4())
        request.state.request_id = request_id

        token = set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
