"""
Questions router — viewer submissions and the moderator review console.

Endpoints:
    POST  /questions                      → submit a question (guest or viewer)
    GET   /questions/mine                 → own questions, newest first
    GET   /questions/mine/stats           → own questions per status
    GET   /questions/workflow             → status labels and offered transitions
    GET   /questions                      → all questions (host), status / game filters
    GET   /questions/{id}                 → one question (host)
    POST  /questions/{id}/status          → change status, email the author (host)
    PATCH /questions/{id}                 → game / tags / outcome partial update (host)
    POST  /questions/{id}/tags/{tag}      → toggle one tag (host)
    POST  /questions/{id}/outcome         → toggle "answered by experts" (host)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from chgk_portal.dependencies import require_db
from chgk_portal.models.question import QuestionStatus, QuestionTag
from chgk_portal.models.user import User
from chgk_portal.routers.auth import get_current_user, require_admin, require_viewer
from chgk_portal.schemas.question import AuthorStats, QuestionDraft, QuestionOut, QuestionUpdate, StatusChange
from chgk_portal.services import questions
from chgk_portal.services.workflow import STATUS_LABELS, rejection_needs_reason, suggested_transitions

router = APIRouter(prefix="/questions", tags=["questions"])


def _parse_game_filter(game: Optional[str]):
    """'ALL' or nothing → no filter, 'NONE' → unassigned, a number → that game."""
    if game is None or game.upper() == "ALL":
        return None, False
    if game.upper() == "NONE":
        return None, True
    try:
        return int(game), False
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Bad game filter: {game}")


# ═══════════════════════════════════════════════════════════════
#  Viewer side
# ═══════════════════════════════════════════════════════════════

@router.post("", response_model=QuestionOut, status_code=status.HTTP_201_CREATED)
async def submit_question(
    draft: QuestionDraft,
    current_user: Optional[User] = Depends(get_current_user),
    db=Depends(require_db),
):
    question = await questions.submit(db, draft, user_id=current_user.id if current_user else None)
    if question is None:
        raise HTTPException(status_code=500, detail="Could not save the question, please try again")
    return question


@router.get("/mine", response_model=List[QuestionOut])
async def my_questions(current_user: User = Depends(require_viewer), db=Depends(require_db)):
    return await questions.list_by_author(db, current_user.id)


@router.get("/mine/stats", response_model=AuthorStats)
async def my_stats(current_user: User = Depends(require_viewer), db=Depends(require_db)):
    counts = await questions.author_stats(db, current_user.id)
    return AuthorStats(counts=counts, total=sum(counts.values()))


@router.get("/workflow")
async def workflow():
    """Labels and the transitions the console offers for each status."""
    return {
        s.value: {
            "label": STATUS_LABELS[s],
            "next": [n.value for n in suggested_transitions(s)],
        }
        for s in QuestionStatus
    }


# ═══════════════════════════════════════════════════════════════
#  Moderator console
# ═══════════════════════════════════════════════════════════════

@router.get("", response_model=List[QuestionOut], dependencies=[Depends(require_admin)])
async def list_questions(
    status_filter: Optional[QuestionStatus] = None,
    game: Optional[str] = None,
    db=Depends(require_db),
):
    game_id, unassigned = _parse_game_filter(game)
    return await questions.list_all(db, status=status_filter, game_id=game_id, unassigned=unassigned)


@router.get("/{question_id}", response_model=QuestionOut, dependencies=[Depends(require_admin)])
async def read_question(question_id: int, db=Depends(require_db)):
    question = await questions.get(db, question_id)
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found")
    return question


@router.post("/{question_id}/status", response_model=QuestionOut, dependencies=[Depends(require_admin)])
async def change_status(question_id: int, data: StatusChange, db=Depends(require_db)):
    """Rejecting requires a reason; without one nothing is written or sent."""
    if rejection_needs_reason(data.status, data.feedback):
        raise HTTPException(status_code=400, detail="A rejection reason is required")

    ok = await questions.transition_status(db, question_id, data.status, data.feedback)
    if not ok:
        raise HTTPException(status_code=404, detail="Question not found or not updated")
    return await questions.get(db, question_id)


@router.patch("/{question_id}", response_model=QuestionOut, dependencies=[Depends(require_admin)])
async def update_question(question_id: int, data: QuestionUpdate, db=Depends(require_db)):
    changes = data.model_dump(exclude_unset=True)
    try:
        question = await questions.update_fields(db, question_id, changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found or not updated")
    return question


@router.post("/{question_id}/tags/{tag}", response_model=QuestionOut, dependencies=[Depends(require_admin)])
async def toggle_tag(question_id: int, tag: QuestionTag, db=Depends(require_db)):
    question = await questions.toggle_tag(db, question_id, tag)
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found or not updated")
    return question


@router.post("/{question_id}/outcome", response_model=QuestionOut, dependencies=[Depends(require_admin)])
async def toggle_outcome(question_id: int, db=Depends(require_db)):
    """Only a played question has an outcome."""
    question = await questions.get(db, question_id)
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found")
    try:
        return await questions.toggle_outcome(db, question_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
