"""
Communication repository — announcements, polls with per-user votes,
and per-user hidden-item markers that split a feed into current/archived.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chgk_portal.models.announcement import Announcement
from chgk_portal.models.hidden_item import HiddenItem, HiddenItemType
from chgk_portal.models.poll import Poll, PollVote
from chgk_portal.models.user import User
from chgk_portal.services import profiles

logger = logging.getLogger(__name__)

ANNOUNCEMENT_FIELDS = {"title", "message", "image_url", "link_url", "link_text"}
POLL_FIELDS = {"question", "options", "is_active", "allow_multiple", "ends_at"}

T = TypeVar("T")


class PollClosedError(ValueError):
    """Voting on an inactive poll or after its end time."""


# ═══════════════════════════════════════════════════════════════
#  Announcements
# ═══════════════════════════════════════════════════════════════

async def create_announcement(db: Optional[AsyncSession], fields: Dict[str, Any]) -> Optional[Announcement]:
    if db is None:
        return None
    item = Announcement(
        **{k: v for k, v in fields.items() if k in ANNOUNCEMENT_FIELDS},
        views=0,
        created_at=datetime.now(timezone.utc),
    )
    try:
        db.add(item)
        await db.commit()
        await db.refresh(item)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to create announcement: {e}")
        return None
    return item


async def get_announcement(db: Optional[AsyncSession], announcement_id: int) -> Optional[Announcement]:
    if db is None:
        return None
    result = await db.execute(select(Announcement).where(Announcement.id == announcement_id))
    return result.scalar_one_or_none()


async def update_announcement(
    db: Optional[AsyncSession], announcement_id: int, changes: Dict[str, Any]
) -> Optional[Announcement]:
    item = await get_announcement(db, announcement_id)
    if item is None:
        return None
    for key, value in changes.items():
        if key in ANNOUNCEMENT_FIELDS:
            setattr(item, key, value)
    try:
        await db.commit()
        await db.refresh(item)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to update announcement {announcement_id}: {e}")
        return None
    return item


async def delete_announcement(db: Optional[AsyncSession], announcement_id: int) -> bool:
    """Delete the announcement and every user's hide marker for it."""
    item = await get_announcement(db, announcement_id)
    if item is None:
        return False
    try:
        await db.execute(
            delete(HiddenItem).where(
                HiddenItem.item_id == announcement_id,
                HiddenItem.item_type == HiddenItemType.ANNOUNCEMENT,
            )
        )
        await db.delete(item)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to delete announcement {announcement_id}: {e}")
        return False
    return True


async def list_announcements(db: Optional[AsyncSession]) -> List[Announcement]:
    if db is None:
        return []
    result = await db.execute(
        select(Announcement).order_by(Announcement.created_at.desc(), Announcement.id.desc())
    )
    return list(result.scalars().all())


async def increment_views(db: Optional[AsyncSession], announcement_ids: Iterable[int]) -> int:
    """
    Add one view to each announcement. Read-modify-write per id, not atomic:
    a concurrent increment may be lost. A failing id is logged and skipped.
    Returns how many ids were counted.
    """
    if db is None:
        return 0
    counted = 0
    for announcement_id in announcement_ids:
        try:
            item = await get_announcement(db, announcement_id)
            if item is None:
                continue
            item.views = (item.views or 0) + 1
            await db.commit()
            counted += 1
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning(f"Could not count view of announcement {announcement_id}: {e}")
    return counted


# ═══════════════════════════════════════════════════════════════
#  Polls
# ═══════════════════════════════════════════════════════════════

def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; they were stored as UTC.
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def is_closed(poll: Poll, now: Optional[datetime] = None) -> bool:
    if not poll.is_active:
        return True
    ends_at = _aware(poll.ends_at)
    if ends_at is None:
        return False
    return ends_at <= (now or datetime.now(timezone.utc))


async def create_poll(db: Optional[AsyncSession], fields: Dict[str, Any]) -> Optional[Poll]:
    if db is None:
        return None
    poll = Poll(
        question=fields["question"],
        is_active=fields.get("is_active", True),
        allow_multiple=fields.get("allow_multiple", False),
        ends_at=fields.get("ends_at"),
        created_at=datetime.now(timezone.utc),
    )
    poll.options = fields.get("options") or []
    try:
        db.add(poll)
        await db.commit()
        await db.refresh(poll)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to create poll: {e}")
        return None
    return poll


async def get_poll(db: Optional[AsyncSession], poll_id: int) -> Optional[Poll]:
    if db is None:
        return None
    result = await db.execute(select(Poll).where(Poll.id == poll_id))
    return result.scalar_one_or_none()


async def _keep_newest_votes(db: AsyncSession, poll_id: int) -> None:
    # Single-choice: one vote per user
    result = await db.execute(
        select(PollVote)
        .where(PollVote.poll_id == poll_id)
        .order_by(PollVote.created_at.desc(), PollVote.id.desc())
    )
    kept: Set[int] = set()
    for v in result.scalars().all():
        if v.user_id in kept:
            await db.delete(v)
        else:
            kept.add(v.user_id)


async def update_poll(db: Optional[AsyncSession], poll_id: int, changes: Dict[str, Any]) -> Optional[Poll]:
    """
    Edit a poll. Votes for options beyond a shortened option list are dropped.
    Switching to single choice keeps only each user's newest vote.
    """
    poll = await get_poll(db, poll_id)
    if poll is None:
        return None
    try:
        for key, value in changes.items():
            if key not in POLL_FIELDS:
                continue
            if key == "options":
                poll.options = value
                await db.execute(
                    delete(PollVote).where(
                        PollVote.poll_id == poll_id,
                        PollVote.option_index >= len(value),
                    )
                )
            else:
                setattr(poll, key, value)
        if changes.get("allow_multiple") is False:
            await _keep_newest_votes(db, poll_id)
        await db.commit()
        await db.refresh(poll)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to update poll {poll_id}: {e}")
        return None
    return poll


async def delete_poll(db: Optional[AsyncSession], poll_id: int) -> bool:
    poll = await get_poll(db, poll_id)
    if poll is None:
        return False
    try:
        await db.execute(delete(PollVote).where(PollVote.poll_id == poll_id))
        await db.execute(
            delete(HiddenItem).where(
                HiddenItem.item_id == poll_id,
                HiddenItem.item_type == HiddenItemType.POLL,
            )
        )
        await db.delete(poll)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to delete poll {poll_id}: {e}")
        return False
    return True


async def list_polls(db: Optional[AsyncSession]) -> List[Poll]:
    if db is None:
        return []
    result = await db.execute(select(Poll).order_by(Poll.created_at.desc(), Poll.id.desc()))
    return list(result.scalars().all())


async def list_active_polls(db: Optional[AsyncSession]) -> List[Poll]:
    if db is None:
        return []
    result = await db.execute(
        select(Poll).where(Poll.is_active.is_(True)).order_by(Poll.created_at.desc(), Poll.id.desc())
    )
    return list(result.scalars().all())


async def results(db: Optional[AsyncSession], poll: Poll) -> Dict[int, int]:
    """Vote count per option index, computed on read. Every index is present."""
    counts = {i: 0 for i in range(len(poll.options))}
    if db is None:
        return counts
    result = await db.execute(select(PollVote.option_index).where(PollVote.poll_id == poll.id))
    for (index,) in result.all():
        if index in counts:
            counts[index] += 1
    return counts


async def user_votes(db: Optional[AsyncSession], poll_id: int, user_id: int) -> List[int]:
    if db is None:
        return []
    result = await db.execute(
        select(PollVote.option_index).where(PollVote.poll_id == poll_id, PollVote.user_id == user_id)
    )
    return sorted(row[0] for row in result.all())


async def vote(
    db: Optional[AsyncSession],
    poll_id: int,
    user_id: int,
    option_index: int,
) -> Optional[List[int]]:
    """
    Toggle a user's vote for one option and return their votes afterwards.

    Voting for an already chosen option retracts it. On a single-choice poll
    a new choice replaces the previous one; on a multiple-choice poll each
    option is toggled independently. Returns None when the poll is missing.
    """
    poll = await get_poll(db, poll_id)
    if poll is None:
        return None
    if not 0 <= option_index < len(poll.options):
        raise ValueError(f"Option index {option_index} is out of range")
    if is_closed(poll):
        raise PollClosedError("Voting for this poll is closed")

    result = await db.execute(
        select(PollVote).where(PollVote.poll_id == poll_id, PollVote.user_id == user_id)
    )
    existing = list(result.scalars().all())

    try:
        same = [v for v in existing if v.option_index == option_index]
        if same:
            for v in same:
                await db.delete(v)
        else:
            if not poll.allow_multiple:
                for v in existing:
                    await db.delete(v)
                # Deletes must reach the store before the new row
                await db.flush()
            db.add(PollVote(poll_id=poll_id, user_id=user_id, option_index=option_index))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Vote by user {user_id} on poll {poll_id} failed: {e}")
        raise

    return await user_votes(db, poll_id, user_id)


async def clear_votes(db: Optional[AsyncSession], poll_id: int, user_id: int) -> bool:
    """Withdraw all of a user's votes on a poll."""
    poll = await get_poll(db, poll_id)
    if poll is None:
        return False
    if is_closed(poll):
        raise PollClosedError("Voting for this poll is closed")
    try:
        await db.execute(
            delete(PollVote).where(PollVote.poll_id == poll_id, PollVote.user_id == user_id)
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Clearing votes of user {user_id} on poll {poll_id} failed: {e}")
        return False
    return True


async def vote_details(db: Optional[AsyncSession], poll_id: int) -> Dict[int, List[Dict[str, Any]]]:
    """One row per vote with the voter's name and avatar, grouped by option index."""
    if db is None:
        return {}
    result = await db.execute(
        select(PollVote, User.email)
        .join(User, User.id == PollVote.user_id)
        .where(PollVote.poll_id == poll_id)
        .order_by(PollVote.option_index, PollVote.created_at)
    )
    rows = result.all()
    people = await profiles.by_ids(db, [v.user_id for v, _ in rows])

    grouped: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
    for v, email in rows:
        profile = people.get(v.user_id)
        name = profile.full_name if profile is not None and profile.full_name else email.split("@")[0]
        grouped[v.option_index].append(
            {
                "user_id": v.user_id,
                "full_name": name,
                "avatar_url": profile.avatar_url if profile is not None else None,
                "option_index": v.option_index,
            }
        )
    return dict(grouped)


# ═══════════════════════════════════════════════════════════════
#  Hidden items (per-user archive)
# ═══════════════════════════════════════════════════════════════

async def hide(db: Optional[AsyncSession], user_id: int, item_id: int, item_type: HiddenItemType) -> bool:
    if db is None:
        return False
    item_type = HiddenItemType(item_type)
    existing = await db.get(HiddenItem, (user_id, item_id, item_type))
    if existing is not None:
        return True
    try:
        db.add(HiddenItem(user_id=user_id, item_id=item_id, item_type=item_type))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to hide {item_type.value} {item_id} for user {user_id}: {e}")
        return False
    return True


async def unhide(db: Optional[AsyncSession], user_id: int, item_id: int, item_type: HiddenItemType) -> bool:
    if db is None:
        return False
    try:
        await db.execute(
            delete(HiddenItem).where(
                HiddenItem.user_id == user_id,
                HiddenItem.item_id == item_id,
                HiddenItem.item_type == HiddenItemType(item_type),
            )
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to restore {item_type} {item_id} for user {user_id}: {e}")
        return False
    return True


async def list_hidden_ids(
    db: Optional[AsyncSession], user_id: int, item_type: Optional[HiddenItemType] = None
) -> Set[int]:
    if db is None:
        return set()
    query = select(HiddenItem.item_id).where(HiddenItem.user_id == user_id)
    if item_type is not None:
        query = query.where(HiddenItem.item_type == HiddenItemType(item_type))
    result = await db.execute(query)
    return {row[0] for row in result.all()}


def partition_feed(items: Sequence[T], hidden_ids: Set[int]) -> Tuple[List[T], List[T]]:
    """Split feed items into (current, archived) by the user's hidden ids."""
    current = [item for item in items if item.id not in hidden_ids]
    archived = [item for item in items if item.id in hidden_ids]
    return current, archived
