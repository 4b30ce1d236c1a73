"""Author notifications: EmailJS status emails with a simulated fallback, plus in-app feed entries."""

import asyncio
import logging
from typing import Optional

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chgk_portal.config import settings
from chgk_portal.models.notification import Notification
from chgk_portal.services.workflow import NO_FEEDBACK

logger = logging.getLogger(__name__)


def _credentials_set() -> bool:
    return bool(
        settings.EMAILJS_SERVICE_ID
        and settings.EMAILJS_TEMPLATE_ID
        and settings.EMAILJS_PUBLIC_KEY
    )


def build_payload(to_email: str, to_name: str, status_text: str, feedback: Optional[str] = None) -> dict:
    """EmailJS request body: template id, recipient and a flat parameter map."""
    return {
        "service_id": settings.EMAILJS_SERVICE_ID,
        "template_id": settings.EMAILJS_TEMPLATE_ID,
        "user_id": settings.EMAILJS_PUBLIC_KEY,
        "template_params": {
            "to_email": to_email,
            "to_name": to_name,
            "status": status_text,
            "feedback": feedback or NO_FEEDBACK,
            "game_name": settings.CLUB_NAME,
            "from_name": settings.CLUB_SENDER_NAME,
        },
    }


def _send_email_sync(to_email: str, to_name: str, status_text: str, feedback: Optional[str] = None) -> bool:
    """Synchronous function to actually send or simulate the email."""
    if not _credentials_set():
        # Fallback Simulation
        logger.warning(
            "EmailJS credentials not set. Skipping email to %s: %s", to_email, status_text
        )
        return False

    payload = build_payload(to_email, to_name, status_text, feedback)
    try:
        resp = requests.post(settings.EMAILJS_ENDPOINT, json=payload, timeout=15)
    except requests.RequestException as e:
        logger.error(f"Network error sending email to {to_email}: {e}")
        return False

    if resp.ok:
        logger.info(f"Email successfully sent to {to_email}")
        return True

    logger.error(f"EmailJS error for {to_email}: {resp.status_code} {resp.text}")
    return False


async def send_status_email(to_email: str, to_name: str, status_text: str, feedback: Optional[str] = None) -> bool:
    """Notify a question author about its status. Never raises."""
    if not to_email:
        return False
    # Run synchronous HTTP in a threadpool to avoid blocking the event loop
    return await asyncio.to_thread(_send_email_sync, to_email, to_name, status_text, feedback)


async def push_notification(
    db: AsyncSession,
    user_id: Optional[int],
    message: str,
    question_id: Optional[int] = None,
    link: Optional[str] = None,
) -> Optional[Notification]:
    """Add an in-app feed entry for a registered user. Anonymous authors get none."""
    if db is None or not user_id:
        return None
    notif = Notification(user_id=user_id, question_id=question_id, message=message, link=link)
    try:
        db.add(notif)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to store notification for user {user_id}: {e}")
        return None
    return notif
