"""JSON web tokens for authenticating requests."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import jwt as pyjwt

SECRET_ENV = "GOMCP_SECRET"
TOKEN_LIFETIME = timedelta(hours=1)
_ALGORITHMS = ["HS256", "HS384", "HS512"]


class TokenError(Exception):
    """Raised when a token cannot be extracted, verified or created."""


def get_secret() -> bytes:
    """Return the signing secret taken from the GOMCP_SECRET environment variable."""
    return os.environ.get(SECRET_ENV, "").encode("utf-8")


def _authorization(headers: Mapping[str, str]) -> str:
    for name, value in headers.items():
        if name.lower() == "authorization":
            return value or ""
    return ""


@dataclass
class Token:
    """Creates and checks HS256-signed tokens whose subject carries a payload."""

    jwt: str = ""
    secret: bytes = field(default_factory=get_secret)

    def extract(self, raw_req_token: str) -> str:
        """Return the token part of a "Bearer <token>" header value."""
        parts = raw_req_token.split(" ")
        if len(parts) != 2:
            raise TokenError("invalid token format")
        return parts[1].strip()

    def verify(self, token_string: str) -> str:
        """Check the signature and expiry and return the subject claim."""
        try:
            claims = pyjwt.decode(token_string, self.secret, algorithms=_ALGORITHMS)
        except pyjwt.PyJWTError as exc:
            raise TokenError(str(exc)) from exc
        subject = claims.get("sub")
        if not isinstance(subject, str):
            raise TokenError("failed to parse jwt claims")
        if not subject:
            raise TokenError("no payload found in token claims")
        return subject

    def validate(self, headers: Mapping[str, str]) -> str:
        """Verify the bearer token carried in a request's Authorization header."""
        raw = _authorization(headers)
        if not raw:
            raise TokenError("no token provided")
        try:
            bearer = self.extract(raw)
        except TokenError as exc:
            raise TokenError(f"failed to extract token: {exc}") from exc
        return self.verify(bearer)

    def create(self, payload: str) -> str:
        """Sign a new token for the payload, valid for one hour, and keep it."""
        expires = datetime.now(timezone.utc) + TOKEN_LIFETIME
        claims = {"sub": payload, "exp": int(expires.timestamp())}
        try:
            signed = pyjwt.encode(claims, self.secret, algorithm="HS256")
        except pyjwt.PyJWTError as exc:
            raise TokenError(str(exc)) from exc
        self.jwt = signed
        return signed