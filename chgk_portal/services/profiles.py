"""Profile repository — lazy profiles, field-merging upsert, moderator directory."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chgk_portal.models.profile import ExpertStatus, UserProfile
from chgk_portal.models.question import Question

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {
    "full_name",
    "telegram",
    "avatar_url",
    "expert_status",
    "is_expert",
    "knowledge_tags",
    "was_captain",
}


def default_profile(user_id: int, email: Optional[str] = None) -> UserProfile:
    """An unsaved profile for a user who never saved one."""
    name = email.split("@")[0] if email else ""
    return UserProfile(
        user_id=user_id,
        full_name=name,
        telegram=None,
        avatar_url=None,
        expert_status=ExpertStatus.NOVICE,
        is_expert=False,
        was_captain=False,
        knowledge_tags_json="[]",
    )


async def get(db: Optional[AsyncSession], user_id: int) -> Optional[UserProfile]:
    if db is None:
        return None
    result = await db.execute(select(UserProfile).where(UserProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def upsert(db: Optional[AsyncSession], user_id: int, fields: Dict[str, Any]) -> Optional[UserProfile]:
    """
    Merge only the provided fields into the user's profile, creating it on
    first save. Fields left out of ``fields`` keep their stored values.
    """
    if db is None:
        return None

    unknown = set(fields) - PROFILE_FIELDS
    if unknown:
        raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

    try:
        profile = await get(db, user_id)
        if profile is None:
            profile = default_profile(user_id)
            db.add(profile)

        for key, value in fields.items():
            if key == "expert_status":
                if value is None:
                    continue
                value = ExpertStatus(value)
            if key == "full_name":
                value = (value or "").strip()
            if key == "knowledge_tags":
                value = [t.strip() for t in (value or []) if t and t.strip()]
            if key in ("is_expert", "was_captain"):
                value = bool(value)
            setattr(profile, key, value)

        await db.commit()
        await db.refresh(profile)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Profile upsert failed for user {user_id}: {e}")
        return None
    return profile


async def list_all(db: Optional[AsyncSession]) -> List[UserProfile]:
    if db is None:
        return []
    result = await db.execute(select(UserProfile).order_by(UserProfile.full_name))
    return list(result.scalars().all())


async def by_ids(db: Optional[AsyncSession], user_ids: List[int]) -> Dict[int, UserProfile]:
    """Resolve display names / avatars for a set of user ids."""
    if db is None or not user_ids:
        return {}
    result = await db.execute(select(UserProfile).where(UserProfile.user_id.in_(set(user_ids))))
    return {p.user_id: p for p in result.scalars().all()}


async def directory(db: Optional[AsyncSession]) -> List[Dict[str, Any]]:
    """Profiles for the moderator's user directory, with submitted question counts."""
    if db is None:
        return []
    profiles = await list_all(db)
    counts_result = await db.execute(
        select(Question.user_id, func.count(Question.id))
        .where(Question.user_id.isnot(None))
        .group_by(Question.user_id)
    )
    counts = {row[0]: row[1] for row in counts_result.all()}
    return [
        {
            "user_id": p.user_id,
            "full_name": p.full_name,
            "telegram": p.telegram,
            "avatar_url": p.avatar_url,
            "expert_status": p.expert_status,
            "is_expert": p.is_expert,
            "knowledge_tags": p.knowledge_tags,
            "was_captain": p.was_captain,
            "question_count": counts.get(p.user_id, 0),
        }
        for p in profiles
    ]
