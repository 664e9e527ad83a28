"""
FastAPI dependencies for authentication, authorization, and database sessions.
"""

import uuid
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.database import get_db
from skillswap.engines.exchange.exchange_service import ExchangeService
from skillswap.kernel.identity.identity_service import IdentityService
from skillswap.kernel.identity.jwt import IdentityClaims, extract_access_token, verify_identity_token
from skillswap.kernel.models.exchange import Exchange
from skillswap.kernel.models.user import User
from skillswap.kernel.permissions.permission_service import PermissionService
from skillswap.kernel.permissions.roles import RoleResolution
from skillswap.logging_config import actor_id_var


DbSession = Annotated[AsyncSession, Depends(get_db)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_identity_claims(request: Request) -> IdentityClaims:
    """Verified provider claims from the session cookie or Bearer header, or 401."""
    token = extract_access_token(request.headers, request.cookies)
    if not token:
        raise _unauthorized("Authentication required")

    claims = verify_identity_token(token)
    if not claims:
        raise _unauthorized("Invalid or expired token")

    actor_id_var.set(claims.sub)
    request.state.actor_id = claims.sub
    return claims


Claims = Annotated[IdentityClaims, Depends(get_identity_claims)]


async def get_current_user(claims: Claims, db: DbSession) -> User:
    """Local user for the verified token, or 401 if the account was never synced."""
    identity_service = IdentityService(db)
    user = await identity_service.get_user_by_supabase_id(claims.sub)

    if not user:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def require_admin(user: CurrentUser) -> User:
    """Require the current user to be an admin."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


AdminUser = Annotated[User, Depends(require_admin)]


def get_client_ip(request: Request) -> Optional[str]:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@dataclass
class ParticipantContext:
    """An exchange together with the caller's resolved roles in it."""

    exchange: Exchange
    user: User
    resolution: RoleResolution


async def load_exchange(exchange_id: uuid.UUID, db: DbSession) -> Exchange:
    exchange = await ExchangeService(db).get_exchange(exchange_id)
    if not exchange:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Exchange not found",
        )
    return exchange


async def get_participant_context(
    exchange_id: uuid.UUID,
    user: CurrentUser,
    db: DbSession,
) -> ParticipantContext:
    """
    Load the exchange and resolve the caller's roles.

    Outsiders get 403 here, before any role-based logic runs.
    """
    exchange = await load_exchange(exchange_id, db)
    resolution = PermissionService.resolve_participant(exchange, user.supabase_id)
    if resolution is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this exchange",
        )
    return ParticipantContext(exchange=exchange, user=user, resolution=resolution)


Participant = Annotated[ParticipantContext, Depends(get_participant_context)]

