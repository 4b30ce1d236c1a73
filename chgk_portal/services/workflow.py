"""
Status workflow helper.

Maps a requested question status to the stored value, the author's email
message and the in-app notification text. The transition graph below is
what the moderator console offers; the store accepts any status.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from chgk_portal.models.question import QuestionStatus

SUBMISSION_FEEDBACK = "Спасибо за участие! Мы свяжемся с вами, если вопрос будет отобран."
NO_FEEDBACK = "Без дополнительных комментариев"

STATUS_EMAIL_MESSAGES: Dict[QuestionStatus, str] = {
    QuestionStatus.PENDING: "Ваш вопрос получен и ОЖИДАЕТ рассмотрения.",
    QuestionStatus.APPROVED: "Ваш вопрос ОДОБРЕН и ожидает отбора на игру.",
    QuestionStatus.REJECTED: "К сожалению, ваш вопрос ОТКЛОНЕН.",
    QuestionStatus.SELECTED: "ПОЗДРАВЛЯЕМ! Ваш вопрос отобран для ближайшей игры.",
    QuestionStatus.PLAYED: "Ваш вопрос сыграл в сегодняшней игре! Спасибо за отличный вопрос.",
    QuestionStatus.NOT_PLAYED: "Вопрос был на столе, но не выпал. Он остается в базе редакционной группы.",
}

STATUS_LABELS: Dict[QuestionStatus, str] = {
    QuestionStatus.PENDING: "На рассмотрении",
    QuestionStatus.APPROVED: "Одобрен",
    QuestionStatus.REJECTED: "Отклонен",
    QuestionStatus.SELECTED: "Отобран на игру",
    QuestionStatus.PLAYED: "Сыгран",
    QuestionStatus.NOT_PLAYED: "Не выпал",
}

# Forward moves offered by the console, plus the two corrections some screens allow.
SUGGESTED_TRANSITIONS: Dict[QuestionStatus, List[QuestionStatus]] = {
    QuestionStatus.PENDING: [QuestionStatus.APPROVED, QuestionStatus.REJECTED],
    QuestionStatus.APPROVED: [QuestionStatus.SELECTED, QuestionStatus.REJECTED],
    QuestionStatus.SELECTED: [QuestionStatus.PLAYED, QuestionStatus.NOT_PLAYED],
    QuestionStatus.PLAYED: [QuestionStatus.SELECTED],
    QuestionStatus.NOT_PLAYED: [QuestionStatus.PLAYED, QuestionStatus.SELECTED],
    QuestionStatus.REJECTED: [],
}


@dataclass(frozen=True)
class StatusChange:
    status: QuestionStatus
    email_message: str
    notification: str
    feedback: Optional[str] = None


def status_email_message(status: QuestionStatus) -> str:
    return STATUS_EMAIL_MESSAGES.get(status, f"Статус изменен на: {status.value}")


def notification_text(status: QuestionStatus, question_text: str = "", feedback: Optional[str] = None) -> str:
    """In-app feed line for a question reaching ``status``."""
    if status == QuestionStatus.PENDING:
        return f'📨 Вопрос отправлен: "{question_text[:30]}..."'
    if status == QuestionStatus.APPROVED:
        return "✅ Вопрос ОДОБРЕН и добавлен в базу кандидатов."
    if status == QuestionStatus.REJECTED:
        return f"❌ Вопрос отклонен. ({feedback})" if feedback else "❌ Вопрос отклонен. "
    if status == QuestionStatus.SELECTED:
        return "📺 ПОЗДРАВЛЯЕМ! Вопрос отобран на игру!"
    if status == QuestionStatus.PLAYED:
        return "🦉 Вопрос СЫГРАН!"
    if status == QuestionStatus.NOT_PLAYED:
        return "🎲 Вопрос не выпал и вернулся в базу."
    return f"Статус обновлен: {status.value}"


def plan_status_change(
    status: QuestionStatus,
    feedback: Optional[str] = None,
    question_text: str = "",
) -> StatusChange:
    feedback = (feedback or "").strip() or None
    return StatusChange(
        status=status,
        email_message=status_email_message(status),
        notification=notification_text(status, question_text, feedback),
        feedback=feedback,
    )


def rejection_needs_reason(status: QuestionStatus, feedback: Optional[str]) -> bool:
    """The console refuses REJECTED without a non-empty reason."""
    return status == QuestionStatus.REJECTED and not (feedback or "").strip()


def suggested_transitions(status: QuestionStatus) -> List[QuestionStatus]:
    return list(SUGGESTED_TRANSITIONS.get(status, []))
