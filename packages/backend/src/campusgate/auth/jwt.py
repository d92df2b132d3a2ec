"""JWT token creation and verification.

Tokens carry the subject id, the portal role (admin | student) and an
expiry. The signing key is process-wide configuration (settings.jwt_secret).

Two verification entry points:
- decode_token() raises TokenError, used by the HTTP dependencies
- TokenVerifier.verify() never raises: it returns a Claim or a RejectionReason,
  used by the real-time gateway where rejections are values, not exceptions
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union

import jwt

from campusgate.config import settings


class Role(str, Enum):
    ADMIN = "admin"
    STUDENT = "student"


class RejectionReason(str, Enum):
    """Why a bearer token was not accepted."""

    MISSING = "missing"
    MALFORMED = "malformed"
    EXPIRED = "expired"
    SIGNATURE_INVALID = "signatureInvalid"


@dataclass(frozen=True)
class Claim:
    """Verified identity derived from a bearer token."""

    role: Role
    subject_id: str
    expires_at: datetime

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "subject_id": self.subject_id,
            "expires_at": self.expires_at.isoformat(),
        }


class TokenError(Exception):
    """Raised when token verification fails."""

    def __init__(self, reason: RejectionReason, message: str):
        super().__init__(message)
        self.reason = reason


def create_access_token(
    subject_id: str,
    role: Union[Role, str],
    expires_minutes: Optional[int] = None,
    secret: Optional[str] = None,
) -> str:
    """Create a signed access token for a portal user."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        minutes=expires_minutes if expires_minutes is not None
        else settings.access_token_expire_minutes
    )
    payload = {
        "sub": str(subject_id),
        "role": Role(role).value,
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(
        payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm
    )


def decode_token(
    token: Optional[str],
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> Claim:
    """Verify a token and turn it into a Claim.

    Raises TokenError (with a RejectionReason) on failure.
    """
    if token is None or token == "":
        raise TokenError(RejectionReason.MISSING, "Token is missing")
    if not isinstance(token, str):
        raise TokenError(RejectionReason.MALFORMED, "Token must be a string")

    try:
        payload = jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=[algorithm or settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError(RejectionReason.EXPIRED, "Token has expired")
    except jwt.InvalidSignatureError:
        raise TokenError(RejectionReason.SIGNATURE_INVALID, "Token signature is invalid")
    except jwt.InvalidTokenError as e:
        raise TokenError(RejectionReason.MALFORMED, f"Invalid token: {e}")

    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise TokenError(RejectionReason.MALFORMED, "Token carries no known role")

    try:
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        raise TokenError(RejectionReason.MALFORMED, "Token expiry is out of range")

    return Claim(role=role, subject_id=str(payload["sub"]), expires_at=expires_at)


class TokenVerifier:
    """Side-effect free verifier bound to one signing key.

    Built once at startup from settings; the key is never reloaded.
    """

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self._secret = secret
        self._algorithm = algorithm

    @classmethod
    def from_settings(cls) -> "TokenVerifier":
        return cls(settings.jwt_secret, settings.jwt_algorithm)

    def verify(self, token: Optional[str]) -> Union[Claim, RejectionReason]:
        try:
            return decode_token(token, secret=self._secret, algorithm=self._algorithm)
        except TokenError as e:
            return e.reason
