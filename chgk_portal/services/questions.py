"""
Question repository.

Submission, listing, partial moderator updates and status transitions.
Emails and in-app notifications are sent after the write is committed;
their failure never undoes the write.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chgk_portal.models.question import Question, QuestionStatus, QuestionTag
from chgk_portal.schemas.question import QuestionDraft
from chgk_portal.services import games, notifications, profiles
from chgk_portal.services.workflow import SUBMISSION_FEEDBACK, plan_status_change

logger = logging.getLogger(__name__)

# Columns added late to the questions table; a store that rejects them gets a reduced insert.
OPTIONAL_SUBMISSION_FIELDS = ("author_avatar_url", "telegram", "image_urls")

UPDATABLE_FIELDS = {"game_id", "tags", "is_answered_correctly"}


async def _persist_question(db: AsyncSession, values: Dict[str, Any]) -> Question:
    question = Question(**{k: v for k, v in values.items() if k != "image_urls"})
    question.image_urls = values.get("image_urls") or []
    question.tags = []
    db.add(question)
    await db.commit()
    await db.refresh(question)
    return question


async def submit(
    db: Optional[AsyncSession],
    draft: QuestionDraft,
    user_id: Optional[int] = None,
) -> Optional[Question]:
    """
    Store a viewer's question as PENDING and email the author.

    When the insert is rejected and optional fields were present, they are
    stripped and the insert is retried once before giving up.
    """
    if db is None:
        return None

    values: Dict[str, Any] = {
        "user_id": user_id,
        "author_name": draft.author_name.strip(),
        "author_email": str(draft.author_email),
        "telegram": (draft.telegram or "").strip() or None,
        "author_avatar_url": draft.author_avatar_url or None,
        "question_text": draft.question_text.strip(),
        "answer_text": draft.answer_text.strip(),
        "image_urls": [u for u in draft.image_urls if u],
    }

    # Snapshot the account's avatar when the form did not carry one
    if user_id and not values["author_avatar_url"]:
        profile = await profiles.get(db, user_id)
        if profile is not None and profile.avatar_url:
            values["author_avatar_url"] = profile.avatar_url

    values["status"] = QuestionStatus.PENDING
    values["submission_date"] = datetime.now(timezone.utc)

    try:
        question = await _persist_question(db, values)
    except SQLAlchemyError as e:
        await db.rollback()
        if not any(values.get(k) for k in OPTIONAL_SUBMISSION_FIELDS):
            logger.error(f"Question submission failed: {e}")
            return None
        logger.warning(f"Question submission rejected ({e}), retrying without optional fields")
        reduced = {k: v for k, v in values.items() if k not in OPTIONAL_SUBMISSION_FIELDS}
        try:
            question = await _persist_question(db, reduced)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Question submission failed after fallback: {e}")
            return None

    change = plan_status_change(QuestionStatus.PENDING, question_text=question.question_text)
    await notifications.send_status_email(
        question.author_email, question.author_name, change.email_message, SUBMISSION_FEEDBACK
    )
    await notifications.push_notification(db, user_id, change.notification, question_id=question.id)
    return question


async def get(db: Optional[AsyncSession], question_id: int) -> Optional[Question]:
    if db is None:
        return None
    result = await db.execute(select(Question).where(Question.id == question_id))
    return result.scalar_one_or_none()


async def list_all(
    db: Optional[AsyncSession],
    status: Optional[QuestionStatus] = None,
    game_id: Optional[int] = None,
    unassigned: bool = False,
) -> List[Question]:
    """All questions, newest first, optionally filtered by status and game."""
    if db is None:
        return []
    query = select(Question).order_by(Question.submission_date.desc(), Question.id.desc())
    if status is not None:
        query = query.where(Question.status == status)
    if unassigned:
        query = query.where(Question.game_id.is_(None))
    elif game_id is not None:
        query = query.where(Question.game_id == game_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_by_author(db: Optional[AsyncSession], user_id: int) -> List[Question]:
    if db is None:
        return []
    result = await db.execute(
        select(Question)
        .where(Question.user_id == user_id)
        .order_by(Question.submission_date.desc(), Question.id.desc())
    )
    return list(result.scalars().all())


async def author_stats(db: Optional[AsyncSession], user_id: int) -> Dict[QuestionStatus, int]:
    """Number of the author's questions in each status (zeros included)."""
    counts = {s: 0 for s in QuestionStatus}
    if db is None:
        return counts
    result = await db.execute(
        select(Question.status, func.count(Question.id))
        .where(Question.user_id == user_id)
        .group_by(Question.status)
    )
    for status, count in result.all():
        counts[QuestionStatus(status)] = count
    return counts


async def update_fields(
    db: Optional[AsyncSession],
    question_id: int,
    changes: Dict[str, Any],
) -> Optional[Question]:
    """
    Partial update of game assignment, tags and outcome flag.
    Last write wins; keys absent from ``changes`` are left alone.
    """
    if db is None:
        return None

    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")

    question = await get(db, question_id)
    if question is None:
        return None

    if changes.get("is_answered_correctly") is not None and question.status != QuestionStatus.PLAYED:
        raise ValueError("Outcome can only be set for a played question")
    if "game_id" in changes:
        game_id = changes["game_id"]
        if game_id is not None and await games.get(db, game_id) is None:
            raise ValueError(f"Game {game_id} does not exist")
        question.game_id = game_id
    if "tags" in changes:
        tags = [QuestionTag(t).value for t in (changes["tags"] or [])]
        question.tags = list(dict.fromkeys(tags))
    if "is_answered_correctly" in changes:
        question.is_answered_correctly = changes["is_answered_correctly"]

    try:
        await db.commit()
        await db.refresh(question)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to update question {question_id}: {e}")
        return None
    return question


async def assign_game(db: Optional[AsyncSession], question_id: int, game_id: Optional[int]) -> Optional[Question]:
    return await update_fields(db, question_id, {"game_id": game_id})


async def toggle_tag(db: Optional[AsyncSession], question_id: int, tag: QuestionTag) -> Optional[Question]:
    question = await get(db, question_id)
    if question is None:
        return None
    tag = QuestionTag(tag).value
    current = question.tags
    new_tags = [t for t in current if t != tag] if tag in current else current + [tag]
    return await update_fields(db, question_id, {"tags": new_tags})


async def toggle_outcome(db: Optional[AsyncSession], question_id: int) -> Optional[Question]:
    """Unset or False becomes True, True becomes False."""
    question = await get(db, question_id)
    if question is None:
        return None
    return await update_fields(
        db, question_id, {"is_answered_correctly": not question.is_answered_correctly}
    )


async def transition_status(
    db: Optional[AsyncSession],
    question_id: int,
    new_status: QuestionStatus,
    feedback: Optional[str] = None,
) -> bool:
    """
    Write a new status (and feedback when given), then email the author.
    Returns False when the question does not exist or the write fails.
    Any status is accepted; the console decides which moves to offer.
    Leaving PLAYED clears the outcome flag.
    """
    question = await get(db, question_id)
    if question is None:
        return False

    change = plan_status_change(QuestionStatus(new_status), feedback, question.question_text)
    question.status = change.status
    if change.status != QuestionStatus.PLAYED:
        question.is_answered_correctly = None
    if change.feedback:
        question.feedback = change.feedback

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to change status of question {question_id}: {e}")
        return False

    sent = await notifications.send_status_email(
        question.author_email, question.author_name, change.email_message, change.feedback
    )
    if not sent:
        logger.warning(f"Status email for question {question_id} was not delivered")
    await notifications.push_notification(
        db, question.user_id, change.notification, question_id=question.id
    )
    return True
