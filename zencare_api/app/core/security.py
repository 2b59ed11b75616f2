"""
Authentication and role checks for the ZenCare API.

Access tokens are compact HS256 JWTs whose ``sub`` claim is the account
email; ``exp`` is a Unix timestamp.  Each request re-reads the account,
so blocking or deleting a user takes effect on their next call even
with a token that is still valid.

Passwords are stored as ``"<salt hex>$<pbkdf2-sha256 hex>"``.

Role ids are fixed and seeded by ``core.db.init_db``:

* ``1`` admin: the system administrator
* ``2`` college_head: administrator of one college
* ``3`` counsellor
* ``4`` student
"""

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings

ROLE_ADMIN = 1
ROLE_COLLEGE_HEAD = 2
ROLE_COUNSELLOR = 3
ROLE_STUDENT = 4

ROLE_NAMES: Dict[int, str] = {
    ROLE_ADMIN: "admin",
    ROLE_COLLEGE_HEAD: "college_head",
    ROLE_COUNSELLOR: "counsellor",
    ROLE_STUDENT: "student",
}
ROLE_IDS: Dict[str, int] = {name: role_id for role_id, name in ROLE_NAMES.items()}

PBKDF2_ITERATIONS = 100_000
_JWT_HEADER = {"alg": "HS256", "typ": "JWT"}


def _encode_segment(value: Dict[str, Any]) -> str:
    raw = json.dumps(value, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _decode_segment(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _signature(signing_input: str) -> bytes:
    return hmac.new(settings.secret_key.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """Sign ``data`` into a token valid for ``expires_delta`` seconds.

    The lifetime defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``.
    """
    claims = dict(data)
    claims["exp"] = int(time.time()) + (expires_delta or settings.access_token_expire_minutes * 60)
    signing_input = f"{_encode_segment(_JWT_HEADER)}.{_encode_segment(claims)}"
    signature = base64.urlsafe_b64encode(_signature(signing_input)).rstrip(b"=").decode("ascii")
    return f"{signing_input}.{signature}"


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a well-signed, unexpired token, else ``None``."""
    try:
        header, payload, signature = token.split(".")
    except ValueError:
        return None
    try:
        if not hmac.compare_digest(_signature(f"{header}.{payload}"), _decode_segment(signature)):
            return None
        claims = json.loads(_decode_segment(payload).decode("utf-8"))
    except (ValueError, UnicodeError):
        return None
    if not isinstance(claims, dict) or not isinstance(claims.get("exp"), int):
        return None
    if claims["exp"] < int(time.time()):
        return None
    return claims


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _load_account(where: str, params: tuple) -> Optional[Any]:
    from zencare_api.app.core.db import get_connection

    conn = get_connection()
    try:
        return conn.execute(
            f"SELECT id, email, role_id, blocked, block_reason, college_id FROM users WHERE {where}",
            params,
        ).fetchone()
    finally:
        conn.close()


security = HTTPBearer(auto_error=False)


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, Any]:
    """Resolve the bearer token to the calling account.

    Returns the token claims extended with ``user_id``, ``role_id``,
    ``email`` and ``college_id``.  Raises 401 for a missing or invalid
    token and for a deleted account, 403 for a blocked one.

    ``SUPER_ADMIN_TOKEN``, when configured, acts as the first
    admin account.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    token = credentials.credentials

    static_token = settings.super_admin_static_token
    if static_token and hmac.compare_digest(token.encode("utf-8"), static_token.encode("utf-8")):
        claims: Dict[str, Any] = {"sub": "static_super_admin"}
        account = _load_account("role_id = ? ORDER BY id LIMIT 1", (ROLE_ADMIN,))
        if not account:
            raise _unauthorized("No admin account exists yet")
    else:
        claims = decode_access_token(token)
        if not claims:
            raise _unauthorized("Invalid or expired token")
        account = _load_account("email = ?", (claims.get("sub"),))
        if not account:
            raise _unauthorized("User no longer exists")

    if account["blocked"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User account blocked: {account['block_reason'] or 'contact support'}",
        )
    claims.update(
        user_id=account["id"],
        role_id=account["role_id"],
        email=account["email"],
        college_id=account["college_id"],
    )
    return claims


def require_roles(*role_ids: int) -> Callable[..., Dict[str, Any]]:
    """Dependency factory: 403 unless the caller holds one of ``role_ids``."""

    def _check_role(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if current_user.get("role_id") not in role_ids:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return _check_role


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${digest.hex()}"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password or "$" not in hashed_password:
        return False
    salt_hex, digest_hex = hashed_password.split("$", 1)
    try:
        salt, expected = bytes.fromhex(salt_hex), bytes.fromhex(digest_hex)
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(digest, expected)
