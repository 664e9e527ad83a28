"""
Identity service: local user rows keyed by identity provider id.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.kernel.events.event_store import EventStore
from skillswap.kernel.identity.jwt import IdentityClaims
from skillswap.kernel.models.event_log import EventType
from skillswap.kernel.models.user import User
from skillswap.logging_config import get_logger

logger = get_logger(__name__)

# Profile fields a user may change themselves
PROFILE_FIELDS = ("name", "bio", "location", "avatar_url")


class IdentityService:
    """
    User lookup, sync and profile updates.

    Authentication itself happens at the identity provider.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_supabase_id(self, supabase_id: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.supabase_id == supabase_id))
        return result.scalar_one_or_none()

    async def sync_user(
        self,
        claims: IdentityClaims,
        ip_address: Optional[str] = None,
    ) -> Tuple[User, bool]:
        """
        Create or refresh the local user for verified provider claims.

        Fields the user edited locally are not overwritten, so only email
        and last_active are refreshed on existing rows.

        Returns:
            (user, created)

        Raises:
            ValueError: If the token carries no email for a new user
        """
        user = await self.get_user_by_supabase_id(claims.sub)
        now = datetime.now(timezone.utc)

        if user:
            if claims.email:
                user.email = claims.email.lower().strip()
            user.last_active = now
            return user, False

        if not claims.email:
            raise ValueError("Identity token has no email")

        email = claims.email.lower().strip()
        name = (claims.display_name or email.split("@")[0])[:60]
        user = User(
            supabase_id=claims.sub,
            email=email,
            name=name,
            avatar_url=claims.avatar_url,
            last_active=now,
        )
        self.session.add(user)
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.USER_SYNCED,
            entity_type="user",
            entity_id=user.id,
            user_id=user.id,
            payload={"email": user.email},
            ip_address=ip_address,
        )
        logger.info("Created local user", extra={"user_id": str(user.id)})
        return user, True

    async def update_profile(self, user: User, **fields) -> User:
        """Apply profile changes; unknown or None fields are ignored."""
        changed = {}
        for key in PROFILE_FIELDS:
            value = fields.get(key)
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
            setattr(user, key, value)
            changed[key] = value

        if changed:
            await self.event_store.log(
                event_type=EventType.USER_UPDATED,
                entity_type="user",
                entity_id=user.id,
                user_id=user.id,
                payload={"fields": sorted(changed)},
            )
        return user

    async def deactivate(self, user: User) -> User:
        user.is_active = False
        await self.event_store.log(
            event_type=EventType.USER_DEACTIVATED,
            entity_type="user",
            entity_id=user.id,
            user_id=user.id,
        )
        return user

    async def set_admin(self, admin: User, target: User, is_admin: bool) -> User:
        """
        Promote or demote ``target``.

        Raises:
            ValueError: If an admin tries to change their own flag
        """
        if admin.id == target.id:
            raise ValueError("You cannot promote/demote yourself")

        target.is_admin = is_admin
        target.last_admin_activity = datetime.now(timezone.utc) if is_admin else None

        await self.event_store.log(
            event_type=EventType.USER_ADMIN_CHANGED,
            entity_type="user",
            entity_id=target.id,
            user_id=admin.id,
            payload={"is_admin": is_admin},
        )
        logger.info(
            "Admin flag changed",
            extra={"target_user_id": str(target.id), "is_admin": is_admin},
        )
        return target

    async def list_users(
        self,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[User], int]:
        """Users for the admin console, newest first."""
        query = select(User)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.where(
                or_(
                    func.lower(User.name).like(pattern),
                    func.lower(User.email).like(pattern),
                )
            )

        total = (await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0

        query = query.order_by(User.created_at.desc()).offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(query)
        return list(result.scalars().all()), total
