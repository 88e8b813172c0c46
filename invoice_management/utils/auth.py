# invoice_management/utils/auth.py
from __future__ import annotations

from typing import Union

import bcrypt

# ---- bcrypt defaults / policy ----
_BCRYPT_DEFAULT_ROUNDS = 12          # used when hashing
_BCRYPT_MIN_ROUNDS = 4               # bcrypt's own lower bound (tests use it)
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

MIN_PASSWORD_LENGTH = 6


def _parse_bcrypt_cost(hash_str: str) -> int | None:
    """
    Extract the cost from a bcrypt hash: $2b$12$...
    """
    try:
        return int(hash_str.split("$")[2])
    except (IndexError, ValueError):
        return None


def hash_password(password: str, *, rounds: int = _BCRYPT_DEFAULT_ROUNDS) -> str:
    """
    Hash `password` with bcrypt. Raises ValueError for empty/non-string input.
    """
    if not isinstance(password, str) or password == "":
        raise ValueError("Password must be a non-empty string")
    rounds = max(int(rounds), _BCRYPT_MIN_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(password: str, stored_hash: Union[str, bytes, None]) -> bool:
    """
    Verify `password` against a bcrypt `stored_hash`. Unknown schemes and
    malformed hashes verify as False.
    """
    if not stored_hash or password is None:
        return False
    if isinstance(stored_hash, bytes):
        stored_hash = stored_hash.decode("utf-8", errors="replace")
    stored_hash = stored_hash.strip()
    if not stored_hash.startswith(_BCRYPT_PREFIXES):
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored_hash.encode("utf-8"))
    except ValueError:
        # bcrypt raises ValueError on a malformed salt
        return False


def needs_rehash(stored_hash: Union[str, bytes, None], *, min_rounds: int = _BCRYPT_DEFAULT_ROUNDS) -> bool:
    """
    Policy hook: True if the stored hash should be upgraded on next successful
    sign-in (unknown scheme, or bcrypt cost below `min_rounds`).
    """
    if not stored_hash:
        return True
    if isinstance(stored_hash, bytes):
        stored_hash = stored_hash.decode("utf-8", errors="replace")
    h = stored_hash.strip()
    if not h.startswith(_BCRYPT_PREFIXES):
        return True
    cost = _parse_bcrypt_cost(h)
    return cost is None or cost < min_rounds


def password_problem(password: str) -> str | None:
    """Return a human message if `password` is unacceptable, else None."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    return None
