"""FastAPI auth dependencies.

Used as Depends() in route handlers to extract and validate the caller's
Claim from the Authorization: Bearer header.

- get_current_claim → 401 without a valid token
- require_admin     → 403 for a valid non-admin token
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from campusgate.auth.jwt import Claim, Role, TokenError, decode_token


def get_current_claim(
    authorization: Optional[str] = Header(None),
) -> Claim:
    """Extract the caller's claim (401 if no valid token)."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_token(authorization[7:])
    except TokenError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_admin(claim: Claim = Depends(get_current_claim)) -> Claim:
    """Allow only administrator tokens through."""
    if claim.role != Role.ADMIN:
        raise HTTPException(status_code=403, detail="Administrator role required")
    return claim
