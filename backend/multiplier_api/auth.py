"""
Anti-forgery session tokens.

The page that loads the front end receives a token bound to the visitor's
session (user id 0 for anonymous visitors) and echoes it back in the nonce
header on every protected request.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from multiplier_api.config import get_settings
from multiplier_api.exceptions import AuthenticationError
from multiplier_api.logger import get_logger
from multiplier_api.models import ANONYMOUS, Identity

settings = get_settings()
logger = get_logger("auth")

TOKEN_TYPE = "rest"


def create_session_token(user_id: int, is_admin: bool = False) -> str:
    """Issue a token for the session of ``user_id``."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "adm": bool(is_admin),
        "typ": TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(seconds=settings.nonce_lifetime_seconds),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str, token_type: str = TOKEN_TYPE) -> Dict[str, Any]:
    """Decode and check a token, raising AuthenticationError when it is unusable."""
    if not token:
        raise AuthenticationError("Invalid or missing nonce")
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Invalid or missing nonce", "Token has expired")
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid or missing nonce", str(e))

    if payload.get("typ") != token_type:
        raise AuthenticationError("Invalid or missing nonce", "Wrong token type")
    return payload


def extract_identity_from_token(token: str) -> Identity:
    payload = verify_token(token)
    try:
        user_id = int(payload.get("sub", 0))
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid or missing nonce", "Malformed subject")
    if user_id <= 0:
        return ANONYMOUS
    return Identity(user_id=user_id, is_admin=bool(payload.get("adm", False)))
