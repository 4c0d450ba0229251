import time
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from fastapi import Request
from bookify.core.security import get_bearer_token, decode_access_token

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Caller identity taken from the access token; empty for anonymous requests"""

    user_id: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    roles: List[str] = field(default_factory=list)

    @classmethod
    def from_token(cls, payload: Dict[str, Any]) -> "SessionContext":
        return cls(
            user_id=str(payload['sub']),
            email=payload.get('email'),
            username=payload.get('name'),
            roles=list(payload.get('roles') or [])
        )

    @property
    def is_valid(self) -> bool:
        return self.user_id is not None


def get_session_context(request: Request) -> SessionContext:
    return getattr(request.state, 'session_context', None) or SessionContext()


async def session_validation_middleware(request: Request, call_next):
    """
    Attach request.state.session_context for every request.
    A missing or bad token leaves the caller anonymous; the route
    dependencies decide whether that is a 401.
    """
    session = SessionContext()
    token = get_bearer_token(request)
    if token:
        payload = decode_access_token(token)
        if payload:
            session = SessionContext.from_token(payload)
        else:
            logger.debug(f"Rejected bearer token on {request.url.path}")

    request.state.session_context = session
    return await call_next(request)


async def request_logging_middleware(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000

    caller = get_session_context(request).user_id
    logger.info(
        f"{request.method} {request.url.path} | {response.status_code} | "
        f"{elapsed_ms:.1f}ms | user={caller[:8] if caller else 'anonymous'}"
    )
    return response
