"""
Games router — games, expert panels and captains.

Endpoints:
    GET  /games                          → all games, newest first
    GET  /games/mine                     → games the viewer plays in
    POST /games                          → create a game (host)
    PUT  /games/{id}/experts             → replace the whole panel (host)
    POST /games/{id}/experts/{user_id}   → add / remove one panel member (host)
    PUT  /games/{id}/captain             → set or clear the captain (host)
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from chgk_portal.dependencies import require_db
from chgk_portal.models.game import Game
from chgk_portal.models.user import User
from chgk_portal.routers.auth import require_admin, require_viewer
from chgk_portal.schemas.game import CaptainUpdate, ExpertsUpdate, GameCreate, GameOut
from chgk_portal.services import games, notifications

router = APIRouter(prefix="/games", tags=["games"])


async def _notify_new_members(db, game: Game, before: List[int]) -> None:
    for user_id in game.expert_ids:
        if user_id in before:
            continue
        role = "капитан" if game.captain_id == user_id else "знаток"
        await notifications.push_notification(
            db, user_id, f"Вы выбраны на игру «{game.name}» как {role}", link="/games/mine"
        )


@router.get("", response_model=List[GameOut])
async def list_games(db=Depends(require_db)):
    return await games.list_games(db)


@router.get("/mine")
async def my_games(current_user: User = Depends(require_viewer), db=Depends(require_db)):
    """Games whose panel includes the viewer, with their role in each."""
    return [
        {
            **GameOut.model_validate(g).model_dump(by_alias=True, mode="json"),
            "role": "CAPTAIN" if g.captain_id == current_user.id else "EXPERT",
        }
        for g in await games.games_for_expert(db, current_user.id)
    ]


@router.post("", response_model=GameOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_game(data: GameCreate, db=Depends(require_db)):
    game = await games.create(db, data.name, data.date)
    if game is None:
        raise HTTPException(status_code=500, detail="Could not create the game")
    return game


@router.put("/{game_id}/experts", response_model=GameOut, dependencies=[Depends(require_admin)])
async def set_experts(game_id: int, data: ExpertsUpdate, db=Depends(require_db)):
    current = await games.get(db, game_id)
    if current is None:
        raise HTTPException(status_code=404, detail="Game not found")
    before = current.expert_ids

    game = await games.set_experts(db, game_id, data.user_ids)
    if game is None:
        raise HTTPException(status_code=500, detail="Could not update the panel")
    await _notify_new_members(db, game, before)
    return game


@router.post("/{game_id}/experts/{user_id}", response_model=GameOut, dependencies=[Depends(require_admin)])
async def toggle_expert(game_id: int, user_id: int, db=Depends(require_db)):
    current = await games.get(db, game_id)
    if current is None:
        raise HTTPException(status_code=404, detail="Game not found")
    before = current.expert_ids

    game = await games.toggle_expert(db, game_id, user_id)
    if game is None:
        raise HTTPException(status_code=500, detail="Could not update the panel")
    await _notify_new_members(db, game, before)
    return game


@router.put("/{game_id}/captain", response_model=GameOut, dependencies=[Depends(require_admin)])
async def set_captain(game_id: int, data: CaptainUpdate, db=Depends(require_db)):
    try:
        game = await games.set_captain(db, game_id, data.user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if game is None:
        raise HTTPException(status_code=404, detail="Game not found or not updated")
    if data.user_id is not None:
        await notifications.push_notification(
            db, data.user_id, f"Вы выбраны на игру «{game.name}» как капитан", link="/games/mine"
        )
    return game
