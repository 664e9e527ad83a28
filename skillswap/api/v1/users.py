"""
User endpoints: account sync with the identity provider and profiles.
"""

import uuid

from fastapi import APIRouter, HTTPException, Request, status

from skillswap.api.deps import Claims, CurrentUser, DbSession, get_client_ip
from skillswap.kernel.identity.identity_service import IdentityService
from skillswap.schemas.common import SuccessResponse
from skillswap.schemas.user import (
    PublicUserResponse,
    UserProfileUpdate,
    UserResponse,
    UserSyncResponse,
)

router = APIRouter()


@router.post("/sync", response_model=UserSyncResponse)
async def sync_user(request: Request, claims: Claims, db: DbSession):
    """
    Create or refresh the local account for the signed-in provider user.

    Called by the frontend right after sign-in.
    """
    identity_service = IdentityService(db)
    try:
        user, created = await identity_service.sync_user(claims, ip_address=get_client_ip(request))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await db.flush()
    return UserSyncResponse(user=UserResponse.model_validate(user), created=created)


@router.get("/me", response_model=UserResponse)
async def get_me(user: CurrentUser):
    return UserResponse.model_validate(user)


@router.patch("/me", response_model=UserResponse)
async def update_me(data: UserProfileUpdate, user: CurrentUser, db: DbSession):
    """Update the caller's profile."""
    user = await IdentityService(db).update_profile(user, **data.model_dump(exclude_unset=True))
    await db.flush()
    return UserResponse.model_validate(user)


@router.post("/me/deactivate", response_model=SuccessResponse)
async def deactivate_me(user: CurrentUser, db: DbSession):
    await IdentityService(db).deactivate(user)
    return SuccessResponse(message="Account deactivated")


@router.get("/{user_id}/public", response_model=PublicUserResponse)
async def get_public_profile(user_id: uuid.UUID, _: CurrentUser, db: DbSession):
    """Another user's public profile."""
    user = await IdentityService(db).get_user_by_id(user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return PublicUserResponse.model_validate(user)
