"""Notifications router — fetch, read, and mark-all-read."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chgk_portal.database import get_db
from chgk_portal.dependencies import require_db
from chgk_portal.models.notification import Notification
from chgk_portal.models.user import User
from chgk_portal.routers.auth import get_current_user, require_viewer

router = APIRouter(prefix="/notifications", tags=["notifications"])

FEED_LIMIT = 20


@router.get("")
async def get_notifications(
    current_user: Optional[User] = Depends(get_current_user),
    db: Optional[AsyncSession] = Depends(get_db),
):
    """Return last 20 notifications + unread count for the current user."""
    if not current_user or db is None:
        return JSONResponse({"notifications": [], "unreadCount": 0})

    count_result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == current_user.id,
            Notification.is_read.is_(False),
        )
    )
    unread_count = count_result.scalar() or 0

    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == current_user.id)
        .order_by(desc(Notification.created_at), desc(Notification.id))
        .limit(FEED_LIMIT)
    )
    notifs = result.scalars().all()

    return {
        "unreadCount": unread_count,
        "notifications": [
            {
                "id": n.id,
                "questionId": n.question_id,
                "message": n.message,
                "link": n.link or "#",
                "isRead": n.is_read,
                "createdAt": n.created_at.isoformat() if n.created_at else "",
            }
            for n in notifs
        ],
    }


@router.post("/read/{notif_id}")
async def mark_read(
    notif_id: int,
    current_user: User = Depends(require_viewer),
    db: AsyncSession = Depends(require_db),
):
    """Mark a single notification as read and hand back its link."""
    result = await db.execute(
        select(Notification).where(
            Notification.id == notif_id,
            Notification.user_id == current_user.id,
        )
    )
    notif = result.scalar_one_or_none()
    if not notif:
        raise HTTPException(status_code=404, detail="Notification not found")

    notif.is_read = True
    await db.commit()
    return {"ok": True, "link": notif.link or "/"}


@router.post("/read-all")
async def mark_all_read(
    current_user: User = Depends(require_viewer),
    db: AsyncSession = Depends(require_db),
):
    """Mark all notifications as read for the current user."""
    await db.execute(
        update(Notification)
        .where(
            Notification.user_id == current_user.id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
    )
    await db.commit()
    return JSONResponse({"ok": True})
