"""API routes for sign-in, sign-out, registration and passwords."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from carehome.api.deps import get_current_actor, get_policies, get_session_token
from carehome.api.schemas.auth import (
    MeResponse,
    PasswordChangeRequest,
    PasswordChangeResponse,
    RegisterRequest,
    SessionProfile,
    SignInRequest,
    SignInResponse,
)
from carehome.api.schemas.people import ProfileResponse
from carehome.core.config import get_settings
from carehome.core.database import get_db
from carehome.policy import Actor, PolicySet
from carehome.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


def session_cookie_name() -> str:
    return f"{get_settings().session_cookie_prefix}session"


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(
    credentials: SignInRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> SignInResponse:
    """Exchange email and password for a bearer token.

    The token is returned in the body and also set as an HTTP-only cookie
    for page navigation.
    """
    result = await AuthService(db, policies=policies).sign_in(credentials.email, credentials.password)
    await db.commit()

    settings = get_settings()
    response.set_cookie(
        session_cookie_name(),
        result.token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
        secure=not settings.debug,
    )
    return SignInResponse(
        access_token=result.token,
        expires_at=result.session.expires_at,
        profile=SessionProfile.model_validate(result.profile),
    )


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Response:
    token = get_session_token(request)
    if token:
        await AuthService(db).sign_out(token)
        await db.commit()
    response.status_code = status.HTTP_204_NO_CONTENT
    response.delete_cookie(session_cookie_name())
    return response


@router.post("/register", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    profile = await AuthService(db).register(data.email, data.password, data.full_name, data.role)
    await db.commit()
    return profile


@router.get("/me", response_model=MeResponse)
async def me(actor: Actor = Depends(get_current_actor)) -> MeResponse:
    return MeResponse(
        id=actor.id,
        role=actor.role,
        status=actor.status.value,
        linked_resident_profile_ids=sorted(actor.linked_resident_profile_ids, key=str),
    )


@router.post("/password/{profile_id}", response_model=PasswordChangeResponse)
async def change_password(
    profile_id: UUID,
    data: PasswordChangeRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> PasswordChangeResponse:
    """Set a new password for a profile (the profile itself or an admin)."""
    revoked = await AuthService(db, policies=policies).set_password(
        actor, profile_id, data.new_password
    )
    await db.commit()
    return PasswordChangeResponse(revoked_sessions=revoked)
