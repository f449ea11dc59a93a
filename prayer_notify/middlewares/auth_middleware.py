from typing import Callable, Iterable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from prayer_notify.utils.auth import AuthUtils
from prayer_notify.utils.errors import AuthenticationError
from prayer_notify.utils.responses import ResponseBuilder
from prayer_notify.utils.logging import get_logger

logger = get_logger()


class AuthState:
    """Authentication state to be stored in request.state"""

    def __init__(self, subscriber_id: str, is_authenticated: bool = True):
        self.subscriber_id = subscriber_id
        self.is_authenticated = is_authenticated


class AuthMiddleware(BaseHTTPMiddleware):
    """Bearer JWT validation for subscriber-scoped routes.

    Only paths under one of ``protected_prefixes`` are checked. Cloud Tasks
    dispatch, the manual trigger and health checks stay open.
    """

    def __init__(self, app, protected_prefixes: Iterable[str]):
        super().__init__(app)
        self.protected_prefixes = tuple(protected_prefixes)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self._is_protected_path(request.url.path):
            return await call_next(request)

        # Skip authentication for OPTIONS requests (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        auth_state = self._authenticate_request(request)
        if auth_state is None:
            logger.warning(f"Rejected unauthenticated request to {request.url.path}")
            return ResponseBuilder.error(
                request=request,
                message="Invalid or expired authentication",
                error_code="UNAUTHORIZED",
                status_code=401,
            )

        request.state.auth = auth_state
        return await call_next(request)

    def _is_protected_path(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.protected_prefixes)

    @staticmethod
    def _authenticate_request(request: Request) -> Optional[AuthState]:
        token = AuthUtils.extract_bearer_token(request.headers.get("authorization"))
        if not token:
            return None

        payload = AuthUtils.verify_access_token(token)
        if not payload or not payload.get("sub"):
            return None

        return AuthState(subscriber_id=str(payload["sub"]))


def get_current_user(request: Request) -> AuthState:
    """Dependency to get current authenticated subscriber from request state"""
    auth_state = getattr(request.state, "auth", None)

    if not auth_state or not auth_state.is_authenticated:
        raise AuthenticationError("Not authenticated", "NOT_AUTHENTICATED")

    return auth_state
