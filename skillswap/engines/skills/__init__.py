"""
Skill Engine - Skill listings.
"""

from skillswap.engines.skills.skill_service import SkillService

__all__ = [
    "SkillService",
]
