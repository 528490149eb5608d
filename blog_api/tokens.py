"""
Stateless signed tokens.

A token is a JWT carrying the subject's user id, the issue time, an
absolute expiry and a ``purpose`` (access vs. email verification).  Nothing
is stored server-side: a token is valid exactly when its signature checks
out against the configured secret and the codec's clock has not passed its
expiry.  Rotating ``SECRET_KEY`` therefore invalidates every outstanding
token at once.

Timestamps are whole seconds (JWT ``NumericDate``).
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from blog_api.config import Settings
from blog_api.errors import InvalidSignature, MalformedToken, TokenExpired

logger = logging.getLogger(__name__)

PURPOSE_ACCESS = "access"
PURPOSE_EMAIL_VERIFICATION = "email_verification"

_REQUIRED_CLAIMS = ["sub", "iat", "exp"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Claim:
    subject_id: int
    issued_at: datetime
    expires_at: datetime
    purpose: str = PURPOSE_ACCESS


class TokenCodec:
    """
    Issue and verify signed, time-limited identity claims.

    The secret, algorithm and clock are injected at construction so the
    codec is a pure function of (token, secret, clock).
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        default_ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._default_ttl = default_ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            default_ttl=timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
        )

    def issue(
        self,
        subject_id: int,
        ttl: timedelta | None = None,
        purpose: str = PURPOSE_ACCESS,
    ) -> str:
        """Return a URL-safe token for *subject_id* expiring after *ttl*."""
        issued_at = int(self._clock().timestamp())
        lifetime = ttl if ttl is not None else self._default_ttl
        payload = {
            "sub": str(subject_id),
            "iat": issued_at,
            "exp": issued_at + int(lifetime.total_seconds()),
            "purpose": purpose,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str, purpose: str = PURPOSE_ACCESS) -> Claim:
        """
        Return the ``Claim`` embedded in *token*.

        Raises ``InvalidSignature`` when the signature does not match,
        ``MalformedToken`` when the token cannot be parsed into the
        expected claim shape (including a token issued for another
        purpose) and ``TokenExpired`` once the clock is past the expiry.
        The signature is checked before anything else, so a tampered
        expired token reports the signature failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                # Expiry is checked below against the injected clock.
                options={"require": _REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as exc:
            logger.debug("Token signature rejected: %s", exc)
            raise InvalidSignature() from exc
        except jwt.InvalidTokenError as exc:
            logger.debug("Token could not be decoded: %s", exc)
            raise MalformedToken() from exc

        try:
            claim = Claim(
                subject_id=int(payload["sub"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                purpose=payload.get("purpose", PURPOSE_ACCESS),
            )
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise MalformedToken() from exc

        if claim.purpose != purpose:
            raise MalformedToken("Invalid token: not valid for this purpose")
        if self._clock() > claim.expires_at:
            raise TokenExpired()
        return claim
