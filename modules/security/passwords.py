from __future__ import annotations
from typing import Optional

import bcrypt
from werkzeug.security import check_password_hash, generate_password_hash

PBKDF2_METHOD = "pbkdf2:sha256"
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str) -> str:
    return generate_password_hash(password or "", method=PBKDF2_METHOD, salt_length=16)


def needs_rehash(password_hash: Optional[str]) -> bool:
    """Stored hashes in any other format are upgraded on the next successful login."""
    return not (password_hash or "").startswith(PBKDF2_METHOD)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """
    Check a password against a stored hash.
    Imported accounts may still carry bcrypt hashes; those are checked with bcrypt.
    """
    if not password_hash:
        return False
    secret = password or ""

    try:
        if password_hash.startswith(BCRYPT_PREFIXES):
            return bcrypt.checkpw(secret.encode("utf-8"), password_hash.encode("utf-8"))
        return check_password_hash(password_hash, secret)
    except ValueError:
        # malformed hash
        return False
