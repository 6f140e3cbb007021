from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from shiptrack.core.auth import resolve_user_id
from shiptrack.core.errors import AuthenticationAppError
from shiptrack.core.rate_limit import require_client_admission

router = APIRouter(prefix="/api/auth", tags=["Auth"])


class VerifyTokenRequest(BaseModel):
    token: str


class VerifyTokenResponse(BaseModel):
    user_id: str


@router.post(
    "/verify",
    response_model=VerifyTokenResponse,
    dependencies=[Depends(require_client_admission("auth-verify"))],
)
async def verify_token(body: VerifyTokenRequest) -> VerifyTokenResponse:
    """Exchange a bearer token for the user id it belongs to.

    Throttled per client address to slow down token guessing.
    """
    user_id = resolve_user_id(body.token)
    if user_id is None:
        raise AuthenticationAppError(code="invalid_token", message="Invalid or expired token")
    return VerifyTokenResponse(user_id=user_id)
