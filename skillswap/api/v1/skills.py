"""
Skill endpoints.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status

from skillswap.api.deps import CurrentUser, DbSession
from skillswap.engines.skills.skill_service import SkillService
from skillswap.schemas.common import PaginatedResponse, SuccessResponse
from skillswap.schemas.skill import SkillCreate, SkillResponse, SkillUpdate

router = APIRouter()


@router.get("", response_model=PaginatedResponse[SkillResponse])
async def list_skills(
    user: CurrentUser,
    db: DbSession,
    category: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    include_own: bool = Query(False, description="Include the caller's own skills"),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
):
    """Browse available skills."""
    skills, total = await SkillService(db).list_skills(
        category=category,
        level=level,
        search=search,
        exclude_owner=None if include_own else user,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse.create(
        items=[SkillResponse.model_validate(s) for s in skills],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/mine", response_model=List[SkillResponse])
async def list_my_skills(user: CurrentUser, db: DbSession):
    skills = await SkillService(db).list_for_owner(user)
    return [SkillResponse.model_validate(s) for s in skills]


@router.post("", response_model=SkillResponse, status_code=status.HTTP_201_CREATED)
async def create_skill(data: SkillCreate, user: CurrentUser, db: DbSession):
    """Publish a skill."""
    try:
        skill = await SkillService(db).create_skill(user, data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return SkillResponse.model_validate(skill)


async def _get_skill_or_404(service: SkillService, skill_id: uuid.UUID, viewer=None):
    skill = await service.get_skill(skill_id, viewer=viewer)
    if not skill:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Skill not found",
        )
    return skill


@router.get("/{skill_id}", response_model=SkillResponse)
async def get_skill(skill_id: uuid.UUID, user: CurrentUser, db: DbSession):
    skill = await _get_skill_or_404(SkillService(db), skill_id, viewer=user)
    await db.flush()
    return SkillResponse.model_validate(skill)


@router.patch("/{skill_id}", response_model=SkillResponse)
async def update_skill(
    skill_id: uuid.UUID,
    data: SkillUpdate,
    user: CurrentUser,
    db: DbSession,
):
    """Edit one of the caller's skills."""
    service = SkillService(db)
    skill = await _get_skill_or_404(service, skill_id)
    try:
        skill = await service.update_skill(skill, user, data.model_dump(exclude_unset=True))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return SkillResponse.model_validate(skill)


@router.delete("/{skill_id}", response_model=SuccessResponse)
async def delete_skill(skill_id: uuid.UUID, user: CurrentUser, db: DbSession):
    service = SkillService(db)
    skill = await _get_skill_or_404(service, skill_id)
    try:
        await service.delete_skill(skill, user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return SuccessResponse(message="Skill deleted")
