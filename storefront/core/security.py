# storefront/core/security.py
"""
Admin authentication: password login and signed, expiring bearer tokens.

Token = base64url("admin:<issued_at>:<nonce>") + "." + hex HMAC-SHA256 of
that payload. The signing key is ADMIN_TOKEN_SECRET, or a key derived from
the password when no secret is configured. An empty ADMIN_PASSWORD
disables admin access entirely.
"""
from __future__ import annotations
from typing import Optional
import base64
import hashlib
import hmac
import secrets
import time

_SUBJECT = "admin"


def _signing_key(settings) -> bytes:
    if settings.ADMIN_TOKEN_SECRET:
        return settings.ADMIN_TOKEN_SECRET.encode("utf-8")
    return hashlib.sha256(f"storefront-admin:{settings.ADMIN_PASSWORD}".encode("utf-8")).digest()


def _sign(key: bytes, payload: str) -> str:
    return hmac.new(key, payload.encode("utf-8"), hashlib.sha256).hexdigest()


def admin_enabled(settings) -> bool:
    return bool(settings.ADMIN_PASSWORD)


def check_password(settings, password: Optional[str]) -> bool:
    if not admin_enabled(settings) or not password:
        return False
    return secrets.compare_digest(password.encode("utf-8"), settings.ADMIN_PASSWORD.encode("utf-8"))


def issue_admin_token(settings, now: Optional[float] = None) -> str:
    issued = int(now if now is not None else time.time())
    payload = f"{_SUBJECT}:{issued}:{secrets.token_hex(8)}"
    encoded = base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")
    return f"{encoded}.{_sign(_signing_key(settings), payload)}"


def verify_admin_token(settings, token: Optional[str], now: Optional[float] = None) -> bool:
    if not admin_enabled(settings) or not token or "." not in token:
        return False
    encoded, signature = token.rsplit(".", 1)
    try:
        padded = encoded + "=" * (-len(encoded) % 4)
        payload = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (ValueError, UnicodeError):
        return False
    expected = _sign(_signing_key(settings), payload)
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("ascii")):
        return False

    subject, _, rest = payload.partition(":")
    issued_s, _, _nonce = rest.partition(":")
    if subject != _SUBJECT or not issued_s.isdigit():
        return False
    current = now if now is not None else time.time()
    return 0 <= current - int(issued_s) <= settings.admin_token_ttl


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
