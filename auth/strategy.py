"""
auth/strategy.py -- Local username/password authentication strategy.

One login attempt moves through:

    Received -> Lookup -> (Verify | NotFound) -> (Authenticated | Rejected)

authenticate() returns an AuthResult instead of raising, so callers branch on
result.ok. "No such user" and "wrong password" produce the same AuthFailure
reason, and both paths run one scrypt derivation. Neither the reason nor the
response time tells a caller whether a name is registered.

A persistence fault during lookup is logged and reported as a separate
"internal error" failure. It is never folded into the credential-mismatch
reason.

Session reduction:
  serialize_principal() keeps only id and name; no password material ever
  reaches the session store.
  restore_principal() trusts the stored record as-is. A user deleted or
  renamed after login stays authenticated until the session expires.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from auth.errors import InvalidInputError
from auth.hasher import calc_hash, digests_match, generate_salt
from auth.models import INTERNAL_ERROR, INVALID_CREDENTIALS, AuthFailure, AuthResult, SessionPrincipal, UserRecord

if TYPE_CHECKING:
    from auth.store import UserStore

logger = logging.getLogger("userauth.auth")

# Salt for the throw-away derivation on the unknown-user path. Generated once
# at import so the first miss is not slower than later ones.
_DUMMY_SALT: bytes = generate_salt()


class LocalStrategy:
    """Verify submitted credentials against UserStore records.

    The store handle is injected once at startup (see api/main.py lifespan);
    the strategy keeps no per-request state and holds no UserRecord beyond a
    single authenticate() call.
    """

    def __init__(self, store: UserStore) -> None:
        self._store = store

    def authenticate(self, username: str, password: str) -> AuthResult:
        # Same normalization as signup, which stores the name stripped.
        username = username.strip() if isinstance(username, str) else ""
        if not username or not password:
            return _rejected()

        try:
            record = self._store.get_by_name(username)
        except SQLAlchemyError:
            logger.exception("User lookup failed during login")
            return AuthResult(failure=AuthFailure(reason=INTERNAL_ERROR))

        try:
            if record is None:
                # Equalize timing with the wrong-password path.
                calc_hash(password, _DUMMY_SALT)
                logger.info("Login rejected: unknown name")
                return _rejected()
            candidate = calc_hash(password, record.salt)
        except InvalidInputError:
            logger.info("Login rejected: password not hashable")
            return _rejected()

        if not digests_match(record.password_digest, candidate):
            logger.info("Login rejected: bad password for user id=%s", record.id)
            return _rejected()

        return AuthResult(principal=self.serialize_principal(record))

    @staticmethod
    def serialize_principal(user: UserRecord) -> SessionPrincipal:
        """Reduce a user record to the identity stored in the session."""
        return SessionPrincipal(id=user.id, name=user.name)

    @staticmethod
    def restore_principal(stored: SessionPrincipal) -> SessionPrincipal:
        """Rebuild the request identity from a stored session principal.

        No re-fetch from the store: the principal saved at login is used as-is.
        """
        return stored


def _rejected() -> AuthResult:
    return AuthResult(failure=AuthFailure(reason=INVALID_CREDENTIALS))
