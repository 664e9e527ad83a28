"""
Skill listings: create, browse, edit and retire.
"""

import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.kernel.events.event_store import EventStore
from skillswap.kernel.models.base import utcnow
from skillswap.kernel.models.event_log import EventType
from skillswap.kernel.models.skill import DeliveryMethod, Skill, SkillCategory, SkillLevel
from skillswap.kernel.models.user import User
from skillswap.logging_config import get_logger

logger = get_logger(__name__)

EDITABLE_FIELDS = (
    "title",
    "description",
    "category",
    "level",
    "tags",
    "location",
    "delivery_method",
    "estimated_duration",
    "is_available",
)
MAX_TAG_LENGTH = 30


def _clean_tags(tags: Optional[List[str]]) -> List[str]:
    if not tags:
        return []
    cleaned = [tag.strip() for tag in tags if isinstance(tag, str)]
    return [tag for tag in cleaned if tag and len(tag) <= MAX_TAG_LENGTH]


def _check_choice(enum_cls: type, value: Any, message: str) -> str:
    try:
        return enum_cls(getattr(value, "value", value)).value
    except ValueError:
        raise ValueError(message)


class SkillService:
    """Skill CRUD scoped to the owning user."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def create_skill(self, owner: User, data: Dict[str, Any]) -> Skill:
        """
        Publish a new skill.

        Raises:
            ValueError: Missing required fields or invalid category/level
        """
        for key in ("title", "description", "category", "level"):
            if not data.get(key):
                raise ValueError("Title, description, category, and level are required")

        skill = Skill(
            owner_id=owner.id,
            owner_supabase_id=owner.supabase_id,
            title=data["title"].strip(),
            description=data["description"].strip(),
            category=_check_choice(SkillCategory, data["category"], "Invalid category selected"),
            level=_check_choice(SkillLevel, data["level"], "Invalid skill level selected"),
            tags=_clean_tags(data.get("tags")),
            location=(data.get("location") or "").strip() or None,
            delivery_method=_check_choice(
                DeliveryMethod,
                data.get("delivery_method") or DeliveryMethod.BOTH,
                "Invalid delivery method",
            ),
            estimated_duration=data.get("estimated_duration"),
        )
        self.session.add(skill)
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.SKILL_CREATED,
            entity_type="skill",
            entity_id=skill.id,
            user_id=owner.id,
            payload={"title": skill.title, "category": skill.category},
        )
        logger.info("Skill created", extra={"skill_id": str(skill.id)})
        return skill

    async def get_skill(self, skill_id: uuid.UUID, viewer: Optional[User] = None) -> Optional[Skill]:
        """Load a live skill, counting the view unless the owner is looking."""
        result = await self.session.execute(
            select(Skill).where(Skill.id == skill_id, Skill.deleted_at.is_(None))
        )
        skill = result.scalar_one_or_none()
        if skill and viewer is not None and viewer.id != skill.owner_id:
            skill.view_count = (skill.view_count or 0) + 1
        return skill

    def _require_owner(self, skill: Skill, user: User) -> None:
        if skill.owner_id != user.id:
            raise PermissionError("You can only modify your own skills")

    async def update_skill(self, skill: Skill, user: User, changes: Dict[str, Any]) -> Skill:
        """
        Apply owner edits; None values are ignored.

        Raises:
            PermissionError: Caller does not own the skill
            ValueError: Invalid category, level or delivery method
        """
        self._require_owner(skill, user)

        changed = []
        for key in EDITABLE_FIELDS:
            value = changes.get(key)
            if value is None:
                continue
            if key == "category":
                value = _check_choice(SkillCategory, value, "Invalid category selected")
            elif key == "level":
                value = _check_choice(SkillLevel, value, "Invalid skill level selected")
            elif key == "delivery_method":
                value = _check_choice(DeliveryMethod, value, "Invalid delivery method")
            elif key == "tags":
                value = _clean_tags(value)
            elif isinstance(value, str):
                value = value.strip()
            setattr(skill, key, value)
            changed.append(key)

        if changed:
            await self.session.flush()
            await self.event_store.log(
                event_type=EventType.SKILL_UPDATED,
                entity_type="skill",
                entity_id=skill.id,
                user_id=user.id,
                payload={"fields": changed},
            )
        return skill

    async def delete_skill(self, skill: Skill, user: User) -> None:
        """Soft delete; exchanges keep their denormalized skill title."""
        self._require_owner(skill, user)
        skill.deleted_at = utcnow()
        skill.is_available = False
        await self.event_store.log(
            event_type=EventType.SKILL_DELETED,
            entity_type="skill",
            entity_id=skill.id,
            user_id=user.id,
        )

    async def list_skills(
        self,
        category: Optional[str] = None,
        level: Optional[str] = None,
        search: Optional[str] = None,
        exclude_owner: Optional[User] = None,
        page: int = 1,
        page_size: int = 12,
    ) -> Tuple[List[Skill], int]:
        """Available skills for browsing, newest first."""
        query = select(Skill).where(Skill.deleted_at.is_(None), Skill.is_available.is_(True))
        if category and category != "all":
            query = query.where(Skill.category == category)
        if level and level != "all":
            query = query.where(Skill.level == level)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.where(
                or_(
                    func.lower(Skill.title).like(pattern),
                    func.lower(Skill.description).like(pattern),
                    func.lower(cast(Skill.tags, String)).like(pattern),
                )
            )
        if exclude_owner is not None:
            query = query.where(Skill.owner_id != exclude_owner.id)

        total = (await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0

        query = query.order_by(Skill.created_at.desc()).offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    async def list_for_owner(self, owner: User) -> List[Skill]:
        result = await self.session.execute(
            select(Skill)
            .where(Skill.owner_id == owner.id, Skill.deleted_at.is_(None))
            .order_by(Skill.created_at.desc())
        )
        return list(result.scalars().all())
