"""
Polls router — voting for viewers, poll management and vote details for the host.

Endpoints:
    GET    /polls                  → active polls split into current / archived
    POST   /polls/{id}/vote        → toggle a vote for one option
    DELETE /polls/{id}/vote        → withdraw all own votes
    POST   /polls/{id}/hide        → move to the viewer's archive
    DELETE /polls/{id}/hide        → bring back from the archive
    GET    /polls/all              → every poll with results (host)
    POST   /polls                  → create (host)
    PATCH  /polls/{id}             → edit (host)
    DELETE /polls/{id}             → delete with its votes (host)
    GET    /polls/{id}/votes       → who voted for what, by option (host)
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from chgk_portal.dependencies import require_db
from chgk_portal.models.hidden_item import HiddenItemType
from chgk_portal.models.poll import Poll
from chgk_portal.models.user import User
from chgk_portal.routers.auth import require_admin, require_viewer
from chgk_portal.schemas.communication import PollCreate, PollFeed, PollOut, PollUpdate, VoteDetail, VoteIn
from chgk_portal.services import communication
from chgk_portal.services.communication import PollClosedError

router = APIRouter(prefix="/polls", tags=["polls"])


async def _poll_out(db, poll: Poll, user_id: Optional[int] = None) -> PollOut:
    return PollOut(
        id=poll.id,
        question=poll.question,
        options=poll.options,
        is_active=poll.is_active,
        allow_multiple=poll.allow_multiple,
        ends_at=poll.ends_at,
        created_at=poll.created_at,
        is_closed=communication.is_closed(poll),
        results=await communication.results(db, poll),
        user_votes=await communication.user_votes(db, poll.id, user_id) if user_id else [],
    )


async def _require_poll(db, poll_id: int) -> Poll:
    poll = await communication.get_poll(db, poll_id)
    if poll is None:
        raise HTTPException(status_code=404, detail="Poll not found")
    return poll


# ═══════════════════════════════════════════════════════════════
#  Viewer side
# ═══════════════════════════════════════════════════════════════

@router.get("", response_model=PollFeed)
async def feed(current_user: User = Depends(require_viewer), db=Depends(require_db)):
    polls = await communication.list_active_polls(db)
    hidden = await communication.list_hidden_ids(db, current_user.id, HiddenItemType.POLL)
    current, archived = communication.partition_feed(polls, hidden)
    return PollFeed(
        current=[await _poll_out(db, p, current_user.id) for p in current],
        archived=[await _poll_out(db, p, current_user.id) for p in archived],
    )


@router.post("/{poll_id}/vote", response_model=PollOut)
async def vote(
    poll_id: int,
    data: VoteIn,
    current_user: User = Depends(require_viewer),
    db=Depends(require_db),
):
    try:
        votes = await communication.vote(db, poll_id, current_user.id, data.option_index)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Could not save the vote")
    if votes is None:
        raise HTTPException(status_code=404, detail="Poll not found")
    return await _poll_out(db, await _require_poll(db, poll_id), current_user.id)


@router.delete("/{poll_id}/vote", response_model=PollOut)
async def clear_vote(poll_id: int, current_user: User = Depends(require_viewer), db=Depends(require_db)):
    poll = await _require_poll(db, poll_id)
    try:
        ok = await communication.clear_votes(db, poll_id, current_user.id)
    except PollClosedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not ok:
        raise HTTPException(status_code=500, detail="Could not withdraw the vote")
    return await _poll_out(db, poll, current_user.id)


@router.post("/{poll_id}/hide", status_code=status.HTTP_204_NO_CONTENT)
async def hide(poll_id: int, current_user: User = Depends(require_viewer), db=Depends(require_db)):
    await _require_poll(db, poll_id)
    if not await communication.hide(db, current_user.id, poll_id, HiddenItemType.POLL):
        raise HTTPException(status_code=500, detail="Could not archive the poll")


@router.delete("/{poll_id}/hide", status_code=status.HTTP_204_NO_CONTENT)
async def unhide(poll_id: int, current_user: User = Depends(require_viewer), db=Depends(require_db)):
    if not await communication.unhide(db, current_user.id, poll_id, HiddenItemType.POLL):
        raise HTTPException(status_code=500, detail="Could not restore the poll")


# ═══════════════════════════════════════════════════════════════
#  Moderation
# ═══════════════════════════════════════════════════════════════

@router.get("/all", response_model=List[PollOut], dependencies=[Depends(require_admin)])
async def list_all(db=Depends(require_db)):
    return [await _poll_out(db, p) for p in await communication.list_polls(db)]


@router.post("", response_model=PollOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create(data: PollCreate, db=Depends(require_db)):
    poll = await communication.create_poll(db, data.model_dump())
    if poll is None:
        raise HTTPException(status_code=500, detail="Could not create the poll")
    return await _poll_out(db, poll)


@router.patch("/{poll_id}", response_model=PollOut, dependencies=[Depends(require_admin)])
async def update(poll_id: int, data: PollUpdate, db=Depends(require_db)):
    poll = await communication.update_poll(db, poll_id, data.model_dump(exclude_unset=True))
    if poll is None:
        raise HTTPException(status_code=404, detail="Poll not found or not updated")
    return await _poll_out(db, poll)


@router.delete("/{poll_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete(poll_id: int, db=Depends(require_db)):
    if not await communication.delete_poll(db, poll_id):
        raise HTTPException(status_code=404, detail="Poll not found")


@router.get("/{poll_id}/votes", response_model=Dict[int, List[VoteDetail]], dependencies=[Depends(require_admin)])
async def vote_details(poll_id: int, db=Depends(require_db)):
    await _require_poll(db, poll_id)
    return await communication.vote_details(db, poll_id)
