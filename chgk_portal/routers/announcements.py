"""
Announcements router — club news feed and its moderation.

Endpoints:
    GET    /announcements              → viewer feed split into current / archived
    POST   /announcements/{id}/hide    → move to the viewer's archive
    DELETE /announcements/{id}/hide    → bring back from the archive
    GET    /announcements/all          → everything, with view counts (host)
    POST   /announcements              → publish (host)
    PATCH  /announcements/{id}         → edit (host)
    DELETE /announcements/{id}         → delete (host)
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from chgk_portal.dependencies import require_db
from chgk_portal.models.hidden_item import HiddenItemType
from chgk_portal.models.user import User
from chgk_portal.routers.auth import require_admin, require_viewer
from chgk_portal.schemas.communication import (
    AnnouncementCreate,
    AnnouncementFeed,
    AnnouncementOut,
    AnnouncementUpdate,
)
from chgk_portal.services import communication

router = APIRouter(prefix="/announcements", tags=["announcements"])

SEEN_SESSION_KEY = "seen_announcements"


# ═══════════════════════════════════════════════════════════════
#  Viewer feed
# ═══════════════════════════════════════════════════════════════

@router.get("", response_model=AnnouncementFeed)
async def feed(
    request: Request,
    current_user: User = Depends(require_viewer),
    db=Depends(require_db),
):
    """
    Current and archived announcements for the viewer. Items in the current
    partition count one view per browser session.
    """
    items = await communication.list_announcements(db)
    hidden = await communication.list_hidden_ids(db, current_user.id, HiddenItemType.ANNOUNCEMENT)
    current, archived = communication.partition_feed(items, hidden)

    # Only ids that still exist stay in the cookie
    present = {a.id for a in items}
    seen = {i for i in request.session.get(SEEN_SESSION_KEY, []) if i in present}
    for announcement_id in [a.id for a in current if a.id not in seen]:
        if await communication.increment_views(db, [announcement_id]):
            seen.add(announcement_id)
    request.session[SEEN_SESSION_KEY] = sorted(seen)

    return AnnouncementFeed(current=current, archived=archived)


@router.post("/{announcement_id}/hide", status_code=status.HTTP_204_NO_CONTENT)
async def hide(announcement_id: int, current_user: User = Depends(require_viewer), db=Depends(require_db)):
    if await communication.get_announcement(db, announcement_id) is None:
        raise HTTPException(status_code=404, detail="Announcement not found")
    if not await communication.hide(db, current_user.id, announcement_id, HiddenItemType.ANNOUNCEMENT):
        raise HTTPException(status_code=500, detail="Could not archive the announcement")


@router.delete("/{announcement_id}/hide", status_code=status.HTTP_204_NO_CONTENT)
async def unhide(announcement_id: int, current_user: User = Depends(require_viewer), db=Depends(require_db)):
    if not await communication.unhide(db, current_user.id, announcement_id, HiddenItemType.ANNOUNCEMENT):
        raise HTTPException(status_code=500, detail="Could not restore the announcement")


# ═══════════════════════════════════════════════════════════════
#  Moderation
# ═══════════════════════════════════════════════════════════════

@router.get("/all", response_model=List[AnnouncementOut], dependencies=[Depends(require_admin)])
async def list_all(db=Depends(require_db)):
    return await communication.list_announcements(db)


@router.post("", response_model=AnnouncementOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create(data: AnnouncementCreate, db=Depends(require_db)):
    item = await communication.create_announcement(db, data.model_dump())
    if item is None:
        raise HTTPException(status_code=500, detail="Could not publish the announcement")
    return item


@router.patch("/{announcement_id}", response_model=AnnouncementOut, dependencies=[Depends(require_admin)])
async def update(announcement_id: int, data: AnnouncementUpdate, db=Depends(require_db)):
    item = await communication.update_announcement(db, announcement_id, data.model_dump(exclude_unset=True))
    if item is None:
        raise HTTPException(status_code=404, detail="Announcement not found or not updated")
    return item


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete(announcement_id: int, db=Depends(require_db)):
    if not await communication.delete_announcement(db, announcement_id):
        raise HTTPException(status_code=404, detail="Announcement not found")
