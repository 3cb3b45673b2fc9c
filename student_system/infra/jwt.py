"""Centralised JWT helpers for access and email-verification tokens.

Uses HS256 with the application's secret key and validates issuer/audience.
"""

from __future__ import annotations

import time
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError

from student_system.settings import settings


ISSUER = "student-system-api"
AUDIENCE = "student-system-web"
PURPOSE_ACCESS = "access"
PURPOSE_EMAIL_VERIFY = "email_verify"


def _encode(payload: dict[str, object], *, ttl_seconds: int, purpose: str) -> str:
    now = int(time.time())
    body: Dict[str, Any] = {"iss": ISSUER, "aud": AUDIENCE, "iat": now, "exp": now + ttl_seconds, "pur": purpose}
    body.update(payload)
    return jwt.encode(body, settings.secret_key, algorithm="HS256")


def _decode(token: str, *, purpose: str) -> dict[str, object]:
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=["HS256"],
        audience=AUDIENCE,
        issuer=ISSUER,
        leeway=5,
        options={"require": ["exp", "iat", "iss", "aud", "sub"]},
    )
    if payload.get("pur") != purpose:
        raise InvalidTokenError("wrong_purpose")
    return payload  # type: ignore[return-value]


def encode_access(user_id: str, role: str) -> str:
    """Encode an access token for ``user_id``."""
    return _encode(
        {"sub": user_id, "role": role},
        ttl_seconds=settings.access_ttl_minutes * 60,
        purpose=PURPOSE_ACCESS,
    )


def decode_access(token: str) -> dict[str, object]:
    """Decode and validate an access token.

    Raises jwt.InvalidTokenError subclasses on failure.
    """
    return _decode(token, purpose=PURPOSE_ACCESS)


def encode_email_verification(user_id: str, email: str) -> str:
    return _encode(
        {"sub": user_id, "email": email},
        ttl_seconds=settings.email_verify_ttl_hours * 3600,
        purpose=PURPOSE_EMAIL_VERIFY,
    )


def decode_email_verification(token: str) -> dict[str, object]:
    return _decode(token, purpose=PURPOSE_EMAIL_VERIFY)
