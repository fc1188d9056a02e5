"""Per-request logging context held in ``contextvars``.

The request middleware binds a request id and client id for the lifetime
of one HTTP request; every ``LogEntry`` created inside it picks them up.
"""

from contextvars import ContextVar, Token
from typing import Optional, Tuple

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_client_id: ContextVar[Optional[str]] = ContextVar("client_id", default=None)


def bind_request_context(
    request_id: Optional[str], client_id: Optional[str]
) -> Tuple[Token, Token]:
    """Bind context values; pass the returned tokens to ``reset_request_context``."""
    return _request_id.set(request_id), _client_id.set(client_id)


def reset_request_context(tokens: Tuple[Token, Token]) -> None:
    request_token, client_token = tokens
    _request_id.reset(request_token)
    _client_id.reset(client_token)


def current_request_id() -> Optional[str]:
    return _request_id.get()


def current_client_id() -> Optional[str]:
    return _client_id.get()
