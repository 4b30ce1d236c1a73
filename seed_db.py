"""Fill an empty database with the demo club: two viewers, a game, questions, news and a poll."""

import asyncio
from datetime import datetime, timezone

from sqlalchemy import func, select

import chgk_portal.models  # noqa: F401
from chgk_portal.database import Base, async_session, engine
from chgk_portal.models.announcement import Announcement
from chgk_portal.models.game import Game
from chgk_portal.models.poll import Poll, PollVote
from chgk_portal.models.profile import ExpertStatus, UserProfile
from chgk_portal.models.question import Question, QuestionStatus, QuestionTag
from chgk_portal.models.user import User
from chgk_portal.routers.auth import hash_password


def _utc(day: str) -> datetime:
    return datetime.strptime(day, "%Y-%m-%d").replace(tzinfo=timezone.utc)


async def async_main():
    if engine is None:
        print("DATABASE_URL is empty, nothing to seed.")
        return

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        if (await session.execute(select(func.count(User.id)))).scalar():
            print("Database already has users, skipping.")
            return

        # Viewers
        nino = User(email="nino@example.com", password_hash=hash_password("demo123"))
        gia = User(email="gia@example.com", password_hash=hash_password("demo123"))
        session.add_all([nino, gia])
        await session.flush()

        p1 = UserProfile(
            user_id=nino.id, full_name="Нино Тариели", telegram="@nino",
            expert_status=ExpertStatus.NOVICE, is_expert=True, was_captain=True,
        )
        p1.knowledge_tags = ["история", "искусство", "путешествия"]
        p2 = UserProfile(
            user_id=gia.id, full_name="Гия Мераб", telegram="@gia",
            expert_status=ExpertStatus.EXPERIENCED, is_expert=False, was_captain=False,
        )
        p2.knowledge_tags = ["кино", "технологии"]
        session.add_all([p1, p2])

        # Game with Nino as captain
        game = Game(name="Весенняя серия", date=_utc("2025-04-05"), captain_id=nino.id)
        game.expert_ids = [nino.id]
        session.add(game)
        await session.flush()

        # Questions
        q1 = Question(
            user_id=nino.id, author_name="Нино Тариели", author_email=nino.email, telegram="@nino",
            question_text="Какой символ на башне альфы в Батуми виден только из моря?",
            answer_text="Фигура сокола",
            status=QuestionStatus.APPROVED, game_id=game.id,
            submission_date=_utc("2025-02-05"),
        )
        q1.tags = [QuestionTag.BLACK_BOX.value]
        q2 = Question(
            user_id=gia.id, author_name="Гия Мераб", author_email=gia.email, telegram="@gia",
            question_text="В каком году в Батуми прошла первая телевизионная трансляция ЧГК?",
            answer_text="В 2011",
            status=QuestionStatus.PENDING,
            submission_date=_utc("2025-02-10"),
        )
        q2.tags = [QuestionTag.BLITZ.value]
        session.add_all([q1, q2])

        # News
        session.add(Announcement(
            title="Открыта весенняя серия игр",
            message="Подготовка к новой серии началась. Принимаем вопросы до 20 марта.",
            link_url="https://chgk-world.example.com",
            link_text="Положение",
            views=1,
            created_at=_utc("2025-02-01"),
        ))

        # Poll with one vote
        poll = Poll(
            question="Когда удобнее играть весеннюю серию?",
            is_active=True, allow_multiple=False,
            ends_at=_utc("2025-03-30"), created_at=_utc("2025-02-02"),
        )
        poll.options = ["По субботам днём", "По воскресеньям вечером", "Будни после 20:00"]
        session.add(poll)
        await session.flush()
        session.add(PollVote(poll_id=poll.id, user_id=nino.id, option_index=0))

        await session.commit()
    print("Database seeded with the demo club successfully.")


if __name__ == "__main__":
    asyncio.run(async_main())
