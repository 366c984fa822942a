"""
auth/dependencies.py -- Session helpers and FastAPI Depends() guards.

The browser carries only a session id, stored under the "sid" key of
Starlette's signed session cookie (SessionMiddleware, see api/main.py). The
principal itself lives in SessionStore.

start_session()       -- persist a principal and bind its id to the cookie.
end_session()         -- delete the stored principal and clear the cookie.
try_get_current_user() -- soft lookup; returns None when not logged in.
get_current_user()    -- hard lookup; raises HTTP 401 when not logged in.

Layer rule: no imports from web/. fastapi is allowed here because this module
is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import SessionPrincipal
from auth.store import SessionStore
from auth.strategy import LocalStrategy

_SESSION_KEY = "sid"


def start_session(request: Request, principal: SessionPrincipal) -> str:
    """Store principal server-side and point the session cookie at it.

    Any session id already bound to the cookie is invalidated first, so a
    pre-login id can never be reused after login.
    """
    session_store: SessionStore = request.app.state.session_store
    old_sid = request.session.get(_SESSION_KEY)
    if old_sid:
        session_store.delete(old_sid)
    sid = session_store.save(principal)
    request.session.clear()
    request.session[_SESSION_KEY] = sid
    return sid


def end_session(request: Request) -> None:
    """Invalidate the stored principal (if any) and clear the cookie contents."""
    session_store: SessionStore = request.app.state.session_store
    sid = request.session.get(_SESSION_KEY)
    if sid:
        session_store.delete(sid)
    request.session.clear()


def try_get_current_user(request: Request) -> SessionPrincipal | None:
    """Return the principal bound to this request's session, or None.

    Never raises for an unauthenticated request -- callers that need a hard
    401 should use get_current_user().
    """
    sid = request.session.get(_SESSION_KEY)
    if not sid:
        return None
    session_store: SessionStore = request.app.state.session_store
    stored = session_store.load(sid)
    if stored is None:
        # Expired or logged out elsewhere; drop the dangling id.
        request.session.pop(_SESSION_KEY, None)
        return None
    strategy: LocalStrategy = request.app.state.strategy
    return strategy.restore_principal(stored)


def get_current_user(request: Request) -> SessionPrincipal:
    """Require an authenticated session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: SessionPrincipal = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user
