from typing import Optional

from fastapi import Depends, Header, Query, Request

from callback_tracker.core.config import settings
from callback_tracker.core.errors import AuthError
from callback_tracker.schemas.ticket import ApiDepartment, ApiPriority, ApiStatus, TicketFilter
from callback_tracker.services.auth import TokenVerifier
from callback_tracker.services.directory import DirectoryCache

# liveness and scraping stay reachable without a token
AUTH_EXEMPT_PATHS = {"/health", "/metrics"}


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


def get_directory(request: Request) -> DirectoryCache:
    return request.app.state.directory


def require_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> None:
    if settings.skip_auth or request.url.path in AUTH_EXEMPT_PATHS:
        return

    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("no bearer token in Authorization header", public_message="Missing bearer token")

    token = authorization[len("Bearer "):].strip()
    request.state.user = verifier.verify(token)


def ticket_filter(
    status: Optional[ApiStatus] = Query(default=None),
    priority: Optional[ApiPriority] = Query(default=None),
    department: Optional[ApiDepartment] = Query(default=None),
    assigned_to: Optional[str] = Query(default=None, alias="assignedTo"),
    search: Optional[str] = Query(default=None),
) -> TicketFilter:
    return TicketFilter(
        status=status,
        priority=priority,
        department=department,
        assigned_to=assigned_to,
        search=search,
    )
