from contextvars import ContextVar, Token
from typing import Optional

# Correlates log lines of one HTTP request or one Celery task run
_request_id: ContextVar[Optional[str]] = ContextVar(
    "prayer_notify_request_id", default=None
)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def set_request_id(request_id: Optional[str]) -> Token:
    """Bind ``request_id`` to the current context; keep the token to undo it."""
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)
