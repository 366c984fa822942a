"""
auth/hasher.py -- Salt generation, password digests, and digest comparison.

Security design decisions:
  Salt: secrets.token_bytes(16) from the OS CSPRNG, generated once per
       account and stored beside the digest. Two accounts with the same
       password therefore get unrelated digests, and precomputed tables are
       useless.

  Digest: scrypt (hashlib.scrypt) with n=2**14, r=8, p=1 and a 64-byte
       output. scrypt is memory-hard, so each guess costs an attacker ~16 MiB
       of RAM as well as CPU time. The salt is kept separate from the digest
       (not packed into a single encoded string) because the store persists
       them as two binary columns.

  Comparison: hmac.compare_digest. Runtime depends only on the length of the
       inputs, never on the position of the first differing byte.

Layer rule: stdlib plus auth.errors only.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from auth.errors import InvalidInputError

SALT_BYTES = 16
DIGEST_BYTES = 64

_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1
# 128 * r * n bytes of working memory, plus headroom for OpenSSL.
_SCRYPT_MAXMEM = 64 * 1024 * 1024


def generate_salt() -> bytes:
    """Return SALT_BYTES of cryptographically secure random data."""
    return secrets.token_bytes(SALT_BYTES)


def calc_hash(password: str, salt: bytes) -> bytes:
    """Derive the DIGEST_BYTES scrypt digest of password under salt.

    Deterministic: the same (password, salt) always gives the same digest.

    Raises InvalidInputError if password is not a non-empty str that encodes
    as UTF-8 (lone surrogates do not), or salt is not non-empty bytes.
    """
    if not isinstance(password, str) or not password:
        raise InvalidInputError("password must be a non-empty string")
    if not isinstance(salt, (bytes, bytearray, memoryview)) or len(salt) == 0:
        raise InvalidInputError("salt must be non-empty bytes")
    try:
        encoded = password.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidInputError("password is not valid UTF-8 text") from exc
    return hashlib.scrypt(
        encoded,
        salt=bytes(salt),
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        maxmem=_SCRYPT_MAXMEM,
        dklen=DIGEST_BYTES,
    )


def digests_match(expected: bytes, actual: bytes) -> bool:
    """Constant-time equality check for two digests."""
    return hmac.compare_digest(bytes(expected), bytes(actual))
