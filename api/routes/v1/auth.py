"""
api/routes/v1/auth.py -- JSON authentication endpoints for non-browser clients.

Routes:
  POST /api/v1/auth/login   -- password login; starts a session
  POST /api/v1/auth/signup  -- create an account
  POST /api/v1/auth/logout  -- end the session; 200
  GET  /api/v1/auth/me      -- current principal (requires auth)

Security:
  Unknown name and wrong password both return the same 401 "bad_credentials"
  body. Login responses carry Cache-Control: no-store.

Handlers that hash (login, signup) are plain def so FastAPI runs them on the
worker thread pool and scrypt never stalls the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, PrincipalResponse, SignupRequest
from auth.dependencies import end_session, get_current_user, start_session
from auth.errors import InternalError
from auth.models import SessionPrincipal
from auth.signup import register_user, validate_signup
from auth.store import UserStore
from auth.strategy import LocalStrategy

router = APIRouter()


@router.post("/auth/login", response_model=PrincipalResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with name and password and start a session."""
    strategy: LocalStrategy = request.app.state.strategy
    result = strategy.authenticate(body.name, body.password)
    if not result.ok:
        if result.failure.is_internal:
            raise InternalError("login lookup failed")
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid name or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    start_session(request, result.principal)
    resp = JSONResponse(
        status_code=200,
        content=PrincipalResponse(id=result.principal.id, name=result.principal.name).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/signup", response_model=PrincipalResponse, status_code=201)
def signup(request: Request, body: SignupRequest) -> PrincipalResponse:
    """Create a local account.

    ValidationError and ConflictError propagate to the handlers in
    api/main.py, which render 422 and 409 envelopes.
    """
    user_store: UserStore = request.app.state.user_store
    form = validate_signup(body.model_dump())
    user_id = register_user(user_store, form)
    return PrincipalResponse(id=user_id, name=form.name)


@router.post("/auth/logout")
def logout(request: Request) -> JSONResponse:
    """Invalidate the current session."""
    end_session(request)
    return JSONResponse(content={"message": "Logged out."})


@router.get("/auth/me", response_model=PrincipalResponse)
def me(current_user: SessionPrincipal = Depends(get_current_user)) -> PrincipalResponse:
    """Return the identity bound to the current session."""
    return PrincipalResponse(id=current_user.id, name=current_user.name)
