"""
Game API router.

Provides endpoints for:
- Looking up a game's lobby status and result
- Fetching the full history of a finished game
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from room import RoomStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/games", tags=["games"])

# Service instances (set during app startup)
_room_manager = None
_game_store = None


def set_room_manager(manager) -> None:
    """Set the room manager instance."""
    global _room_manager
    _room_manager = manager


def set_game_store(store) -> None:
    """Set the game store instance (None when running in memory only)."""
    global _game_store
    _game_store = store


# -------------------------------------------------------------------------
# Response Models
# -------------------------------------------------------------------------

class GameSummary(BaseModel):
    """Public status of a game."""
    game_id: str
    status: str
    players: list[str]
    turn: Optional[int] = None
    phase: Optional[str] = None
    outcome: Optional[dict] = None


class GameHistory(BaseModel):
    """Everything about a finished game."""
    game_id: str
    config: dict
    players: list[str]
    actions: list[dict]
    events: list[dict]
    final_state: dict
    outcome: dict


# -------------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------------

async def _get_room(game_id: str):
    if _room_manager is None:
        raise HTTPException(status_code=503, detail="Game service unavailable")
    try:
        room = await _room_manager.load_room(game_id, _game_store)
    except ValueError as e:
        logger.error(f"Game {game_id} failed to replay: {e}")
        raise HTTPException(status_code=500, detail="Game could not be restored")
    if room is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return room


@router.get("/{game_id}", response_model=GameSummary)
async def get_game(game_id: str):
    """Lobby status, players and (once over) the outcome of a game."""
    room = await _get_room(game_id)
    game = room.game
    return GameSummary(
        game_id=room.game_id,
        status=room.status.value,
        players=room.player_names(),
        turn=game.state.turn if game and game.state else None,
        phase=game.phase.value if game else None,
        outcome=game.outcome.to_dict() if game and game.outcome else None,
    )


@router.get("/{game_id}/history", response_model=GameHistory)
async def get_game_history(game_id: str):
    """
    Full action history and revealed state of a finished game.

    Only available once the game is over, since the history reveals
    every hand.
    """
    room = await _get_room(game_id)
    if room.status != RoomStatus.ENDED or room.game is None or room.game.outcome is None:
        raise HTTPException(status_code=403, detail="Game is not finished")

    game = room.game
    return GameHistory(
        game_id=room.game_id,
        config=game.state.config.to_dict(),
        players=room.player_names(),
        actions=[record.to_dict() for record in game.actions],
        events=[event.to_dict() for event in game.events],
        final_state=game.state.to_dict(),
        outcome=game.outcome.to_dict(),
    )
