"""Auth API — who am I.

Login and token issuing live with the user records in the portal; this
service only verifies tokens it is handed.
"""

from fastapi import APIRouter, Depends

from campusgate.auth.dependencies import get_current_claim
from campusgate.auth.jwt import Claim

router = APIRouter()


@router.get("/auth/me")
async def me(claim: Claim = Depends(get_current_claim)):
    """Return the caller's verified claim."""
    return claim.to_dict()
