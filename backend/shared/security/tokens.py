"""
JWT issuing and validation.

Tokens are HS256-signed and carry:
    sub   user id (string)
    role  student | committee | admin
    type  access | refresh
    iss, iat, nbf, exp
    iat_ms issue time in milliseconds, compared against per-user revocation markers
    jti   random id, so two tokens minted in the same second still differ

Expiry is checked against the codec's clock rather than inside PyJWT, so an
expired token with a good signature is reported as expired, and tests can
move time without sleeping.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable

import jwt

from shared.config.constants import TokenKind
from shared.config.logging import get_logger

logger = get_logger(__name__)

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "role", "type", "iss", "iat", "nbf", "exp"]


class TokenValidationError(Exception):
    """Base class for every token rejection."""


class MalformedTokenError(TokenValidationError):
    """Bad signature, unparseable token, wrong issuer, missing claims or not yet valid."""


class ExpiredTokenError(TokenValidationError):
    """Signature is valid but exp has passed."""


class WrongTokenKindError(TokenValidationError):
    """A refresh token was presented as access, or the reverse."""


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: str
    kind: str
    issuer: str
    issued_at: int
    not_before: int
    expires_at: int
    issued_at_ms: int
    jti: str | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int  # access token lifetime in seconds


class TokenCodec:
    """
    Issues and validates access/refresh tokens with one signing secret.

    Usage:
        codec = TokenCodec(secret, "studyhub", access_ttl=3600, refresh_ttl=86400)
        pair = codec.issue_pair(user.id, user.role)
        claims = codec.validate_access(pair.access_token)
    """

    def __init__(
        self,
        secret: str,
        issuer: str,
        access_ttl: int,
        refresh_ttl: int,
        leeway: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("JWT signing secret must not be empty")
        if access_ttl <= 0 or refresh_ttl <= 0:
            raise ValueError("token lifetimes must be positive")
        self._secret = secret
        self._issuer = issuer
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._leeway = leeway
        self._clock = clock

    @property
    def access_ttl_seconds(self) -> int:
        return self._access_ttl

    @property
    def refresh_ttl_seconds(self) -> int:
        return self._refresh_ttl

    def now(self) -> float:
        return self._clock()

    # -------------------------------------------------------------------------
    # Issuing
    # -------------------------------------------------------------------------

    def _issue(self, subject_id: int, role: str, kind: str, ttl: int) -> str:
        moment = self._clock()
        now = int(moment)
        payload: dict[str, Any] = {
            "sub": str(subject_id),
            "role": role,
            "type": kind,
            "iss": self._issuer,
            "iat": now,
            "iat_ms": int(moment * 1000),
            "nbf": now,
            "exp": now + ttl,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def issue_access(self, subject_id: int, role: str) -> str:
        return self._issue(subject_id, role, TokenKind.ACCESS, self._access_ttl)

    def issue_refresh(self, subject_id: int, role: str) -> str:
        return self._issue(subject_id, role, TokenKind.REFRESH, self._refresh_ttl)

    def issue_pair(self, subject_id: int, role: str) -> TokenPair:
        """Mint an access and a refresh token. Either both are returned or an error is raised."""
        access = self.issue_access(subject_id, role)
        refresh = self.issue_refresh(subject_id, role)
        return TokenPair(access_token=access, refresh_token=refresh, expires_in=self._access_ttl)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self, token: str) -> TokenClaims:
        """
        Verify signature, issuer and claim shape, then check the time window.

        Raises:
            MalformedTokenError: anything wrong except expiry.
            ExpiredTokenError: well-formed token whose exp has passed.
        """
        if not token:
            raise MalformedTokenError("empty token")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={
                    "require": REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            logger.debug("JWT validation failed", error=str(e))
            raise MalformedTokenError(str(e)) from e

        claims = self._to_claims(payload)

        now = self._clock()
        if now >= claims.expires_at + self._leeway:
            raise ExpiredTokenError("token has expired")
        if now + self._leeway < claims.not_before:
            raise MalformedTokenError("token is not yet valid")

        return claims

    def _to_claims(self, payload: dict[str, Any]) -> TokenClaims:
        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError) as e:
            raise MalformedTokenError("malformed subject claim") from e

        kind = payload["type"]
        if kind not in (TokenKind.ACCESS, TokenKind.REFRESH):
            raise MalformedTokenError("invalid type claim")

        role = payload["role"]
        if not isinstance(role, str) or not role:
            raise MalformedTokenError("malformed role claim")

        for name in ("iat", "nbf", "exp"):
            if not isinstance(payload[name], (int, float)) or isinstance(payload[name], bool):
                raise MalformedTokenError(f"malformed {name} claim")

        # Tokens minted before iat_ms existed fall back to the start of their second
        issued_at_ms = payload.get("iat_ms", int(payload["iat"]) * 1000)
        if not isinstance(issued_at_ms, int) or isinstance(issued_at_ms, bool):
            raise MalformedTokenError("malformed iat_ms claim")

        return TokenClaims(
            user_id=user_id,
            role=role,
            kind=kind,
            issuer=payload["iss"],
            issued_at=int(payload["iat"]),
            not_before=int(payload["nbf"]),
            expires_at=int(payload["exp"]),
            issued_at_ms=issued_at_ms,
            jti=payload.get("jti"),
        )

    def validate_access(self, token: str) -> TokenClaims:
        claims = self.validate(token)
        if claims.kind != TokenKind.ACCESS:
            raise WrongTokenKindError("expected an access token")
        return claims

    def validate_refresh(self, token: str) -> TokenClaims:
        claims = self.validate(token)
        if claims.kind != TokenKind.REFRESH:
            raise WrongTokenKindError("expected a refresh token")
        return claims

    def remaining_ttl(self, claims: TokenClaims) -> int:
        """Whole seconds until expiry, rounded up. Zero or negative once expired."""
        remaining = claims.expires_at - self._clock()
        if remaining <= 0:
            return 0
        return int(remaining) if remaining == int(remaining) else int(remaining) + 1
