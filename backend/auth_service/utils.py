"""
Shared authentication helpers.
Provides token issuing/verification and the request auth gate.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Callable, Optional

import jwt
from argon2 import PasswordHasher
from flask import current_app, request

from backend.auth_service.models import Identity
from backend.common.errors import Unauthorized

ALGORITHM = "HS256"

ph = PasswordHasher()


class InvalidToken(Exception):
    """
    A token could not be verified.

    `reason` is one of "malformed", "expired" or "signature"; callers at the
    HTTP boundary treat all three the same.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"invalid token ({reason})")


class TokenService:
    """Issues and verifies signed, time-bound identity tokens."""

    def __init__(self, secret: str, expiration_minutes: int = 1440):
        if not secret:
            raise RuntimeError("JWT_SECRET is missing. Refusing to issue tokens.")
        self._secret = secret
        self.lifetime = timedelta(minutes=expiration_minutes)

    # --- JWT CREATION ---
    def issue(self, identity: Identity, issued_at: Optional[datetime] = None) -> str:
        """
        Generates a new JWT for a given identity.

        Args:
            identity (Identity): The user id and role to embed.
            issued_at (datetime, optional): Override for the issue time.

        Returns:
            str: Encoded JWT string.
        """
        now = issued_at or datetime.now(timezone.utc)

        payload = {
            "sub": str(identity.user_id),
            "role": identity.role,
            "iat": now,
            "exp": now + self.lifetime,
        }

        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    # --- JWT VALIDATION ---
    def verify(self, token: str) -> Identity:
        """
        Check signature and expiry and return the embedded identity.

        Raises:
            InvalidToken: If the token is malformed, expired or was signed
                with a different secret.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidToken("expired")
        except jwt.InvalidSignatureError:
            raise InvalidToken("signature")
        except jwt.InvalidTokenError:
            raise InvalidToken("malformed")

        role = payload.get("role")
        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError):
            raise InvalidToken("malformed")
        if not role:
            raise InvalidToken("malformed")

        return Identity(user_id=user_id, role=role)


def get_token_service() -> TokenService:
    return current_app.extensions["token_service"]


def _bearer_token() -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.split(" ", 1)[1].strip() or None


def authenticate_request() -> Identity:
    """
    Verify the JWT in the Authorization header.

    Raises:
        Unauthorized: If the header is missing, not a Bearer token, or the
            token fails verification.
    """
    token = _bearer_token()
    if token is None:
        raise Unauthorized("missing token")

    try:
        return get_token_service().verify(token)
    except InvalidToken as e:
        logging.info(f"[Auth] Rejected token on {request.path}: {e.reason}")
        raise Unauthorized("invalid token")


def optional_identity() -> Optional[Identity]:
    """
    Identity of the caller when a valid token is supplied, otherwise None.
    Used by public routes that personalise their output.
    """
    token = _bearer_token()
    if token is None:
        return None
    try:
        return get_token_service().verify(token)
    except InvalidToken:
        return None


def require_auth(view: Callable) -> Callable:
    """
    Route decorator: reject unauthenticated requests with 401 and pass the
    verified Identity to the view as the `identity` keyword argument.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        kwargs["identity"] = authenticate_request()
        return view(*args, **kwargs)

    return wrapper
