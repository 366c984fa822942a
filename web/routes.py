"""
web/routes.py -- Jinja2 template routes for the browser UI.

These routes serve server-rendered HTML forms. They share app.state with the
API routes (same stores, same strategy) but return HTML and redirects instead
of JSON.

Routes:
  GET  /         -- home page (auth required)
  GET  /login    -- login form
  POST /login    -- handle password login
  GET  /logout   -- end the session, redirect /login
  GET  /signup   -- signup form
  POST /signup   -- validate, create the account, redirect /login

Handlers that hash (POST /login, POST /signup) are plain def, so FastAPI runs
them on its worker thread pool.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth.dependencies import end_session, start_session, try_get_current_user
from auth.errors import ConflictError, ValidationError
from auth.models import FieldError
from auth.signup import register_user, validate_signup
from auth.store import UserStore
from auth.strategy import LocalStrategy

logger = logging.getLogger("userauth.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# layout.html calls this to show the logged-in name without every handler
# passing current_user explicitly.
templates.env.globals["try_get_current_user"] = try_get_current_user
router = APIRouter()

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Whitelist mapping for ?error= on /login. The raw query param is NEVER passed
# to templates -- only the message from this dict is.
_ERROR_MESSAGES: dict[str, str] = {
    "bad_credentials": "Invalid name or password.",
}

_DEFAULT_AGE = "20"
_INTERNAL_ERROR_MESSAGE = "Something went wrong. Please try again later."


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only relative paths are accepted.

    Rejects absolute URLs and protocol-relative "//host" targets, either of
    which would send the user off-site after login.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/"


def _error_page(request: Request) -> HTMLResponse:
    """Generic 500 page; the cause is already logged by the strategy."""
    return templates.TemplateResponse(
        request, "error.html", {"title": "Error", "message": _INTERNAL_ERROR_MESSAGE}, status_code=500
    )


def _signup_page(
    request: Request,
    values: dict,
    messages: list[FieldError],
    status_code: int = 200,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "signup.html",
        {
            "title": "Users/Signup",
            "name": values.get("name", ""),
            "email": values.get("email", ""),
            "age": values.get("age", ""),
            "messages": messages,
        },
        status_code=status_code,
    )


# ---------------------------------------------------------------------------
# GET / -- home
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request) -> HTMLResponse:
    user = try_get_current_user(request)
    if user is None:
        return RedirectResponse("/login?next=/", status_code=302)
    return templates.TemplateResponse(request, "index.html", {"title": "Home", "user": user})


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login form."""
    if try_get_current_user(request) is not None:
        return RedirectResponse("/", status_code=302)

    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""))
    notice = "Account created. Please log in." if request.query_params.get("signed_up") == "1" else None
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "title": "Users/Login",
            "content": "Enter your name and password.",
            "error_msg": error_msg,
            "notice": notice,
            "next": _safe_next(request.query_params.get("next")),
        },
    )


@router.post("/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    name: str = Form(""),
    password: str = Form(""),
    next_url: str = Form("/", alias="next"),
) -> RedirectResponse:
    """Handle the login form submission."""
    strategy: LocalStrategy = request.app.state.strategy
    result = strategy.authenticate(name, password)
    if not result.ok:
        if result.failure.is_internal:
            return _error_page(request)
        return RedirectResponse("/login?error=bad_credentials", status_code=302)

    start_session(request, result.principal)
    resp = RedirectResponse(_safe_next(next_url), status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/logout")
def logout(request: Request) -> RedirectResponse:
    """End the session and redirect to the login form."""
    end_session(request)
    return RedirectResponse("/login", status_code=302)


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------


@router.get("/signup", response_class=HTMLResponse)
def signup_form(request: Request) -> HTMLResponse:
    """Render an empty signup form."""
    return _signup_page(request, {"name": "", "email": "", "age": _DEFAULT_AGE}, [])


@router.post("/signup", response_class=HTMLResponse)
def signup_post(
    request: Request,
    name: str = Form(""),
    password: str = Form(""),
    email: str = Form(""),
    age: str = Form(""),
) -> HTMLResponse:
    """Create an account, or redisplay the form with field errors.

    Validation failure: 422, submitted values (never the password) echoed.
    Duplicate name: 409 with a message on the name field.
    """
    submitted = {"name": name, "password": password, "email": email, "age": age}
    try:
        form = validate_signup(submitted)
    except ValidationError as exc:
        return _signup_page(request, exc.values, exc.errors, status_code=422)

    user_store: UserStore = request.app.state.user_store
    try:
        register_user(user_store, form)
    except ConflictError as exc:
        logger.info("Signup rejected: name already taken")
        values = {"name": name, "email": email, "age": age}
        return _signup_page(request, values, [FieldError(field=exc.field, message=exc.message)], status_code=409)

    return RedirectResponse("/login?signed_up=1", status_code=302)
