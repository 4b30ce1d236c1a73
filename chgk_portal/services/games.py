"""Game repository — games and their expert panels."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chgk_portal.models.game import Game
from chgk_portal.services import profiles

logger = logging.getLogger(__name__)


async def create(db: Optional[AsyncSession], name: str, date: Optional[datetime] = None) -> Optional[Game]:
    """Persist a new game with an empty panel. Returns None on failure."""
    if db is None:
        return None
    game = Game(name=name.strip(), date=date or datetime.now(timezone.utc))
    game.expert_ids = []
    try:
        db.add(game)
        await db.commit()
        await db.refresh(game)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to create game {name!r}: {e}")
        return None
    return game


async def list_games(db: Optional[AsyncSession]) -> List[Game]:
    if db is None:
        return []
    result = await db.execute(select(Game).order_by(Game.date.desc(), Game.id.desc()))
    return list(result.scalars().all())


async def get(db: Optional[AsyncSession], game_id: int) -> Optional[Game]:
    if db is None:
        return None
    result = await db.execute(select(Game).where(Game.id == game_id))
    return result.scalar_one_or_none()


async def set_experts(db: Optional[AsyncSession], game_id: int, user_ids: List[int]) -> Optional[Game]:
    """
    Replace the whole expert panel. Not incremental: callers toggling one
    member must read the current set and write it back in full.
    """
    game = await get(db, game_id)
    if game is None:
        return None

    panel = list(dict.fromkeys(user_ids))
    game.expert_ids = panel
    if game.captain_id is not None and game.captain_id not in panel:
        game.captain_id = None
    try:
        await db.commit()
        await db.refresh(game)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to update panel of game {game_id}: {e}")
        return None
    return game


async def toggle_expert(db: Optional[AsyncSession], game_id: int, user_id: int) -> Optional[Game]:
    """Read-modify-write of the panel for a single member."""
    game = await get(db, game_id)
    if game is None:
        return None
    panel = game.expert_ids
    if user_id in panel:
        panel = [uid for uid in panel if uid != user_id]
    else:
        panel.append(user_id)
    return await set_experts(db, game_id, panel)


async def set_captain(db: Optional[AsyncSession], game_id: int, user_id: Optional[int]) -> Optional[Game]:
    """Name a panel member captain (or clear it); the profile keeps a was-captain mark."""
    game = await get(db, game_id)
    if game is None:
        return None
    if user_id is not None and user_id not in game.expert_ids:
        raise ValueError("Captain must be a member of the expert panel")

    game.captain_id = user_id
    try:
        await db.commit()
        await db.refresh(game)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to set captain of game {game_id}: {e}")
        return None

    if user_id is not None:
        await profiles.upsert(db, user_id, {"was_captain": True})
    return game


async def games_for_expert(db: Optional[AsyncSession], user_id: int) -> List[Game]:
    """Games whose panel includes ``user_id`` (filtered in Python, panels are JSON text)."""
    return [g for g in await list_games(db) if user_id in g.expert_ids]
