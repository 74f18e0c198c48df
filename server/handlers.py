"""WebSocket message handlers for the Hanabi server.

Each handler corresponds to a single message type from the client.
Handlers are dispatched via the HANDLERS dict in main.py.

Errors are only ever reported to the sender, as
``{"type": "error", "message": ..., "code": ...}``.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import WebSocket

from game import EngineError
from logging_config import get_logger
from models.actions import PlayerAction
from room import Room, RoomError
from stores.game_store import ConcurrencyError

logger = get_logger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    current_room: Optional[Room] = None
    player_index: Optional[int] = None


async def send_error(ctx: ConnectionContext, message: str, code: Optional[str] = None) -> None:
    await ctx.websocket.send_json({"type": "error", "message": message, "code": code})


# ---------------------------------------------------------------------------
# Lobby handlers
# ---------------------------------------------------------------------------

async def handle_create_game(data: dict, ctx: ConnectionContext, *, room_manager, game_store=None, **kw) -> None:
    game_id = None
    if game_store is not None:
        game_id = await game_store.generate_unique_game_id(taken=set(room_manager.rooms))
    room = room_manager.create_room(game_id)

    logger.with_context(game_id=room.game_id).info("Game created")
    await ctx.websocket.send_json({"type": "game_created", "game_id": room.game_id})


async def handle_join(data: dict, ctx: ConnectionContext, *, room_manager, broadcast_game_state, game_store=None, **kw) -> None:
    game_id = str(data.get("game_id", "")).strip()
    player_name = str(data.get("player_name", ""))

    try:
        room = await room_manager.load_room(game_id, game_store)
    except ValueError as e:
        logger.with_context(game_id=game_id).error(f"Stored game failed to replay: {e}")
        await send_error(ctx, "Game could not be restored")
        return

    if room is None:
        await send_error(ctx, "Game not found")
        return

    if ctx.current_room is not None and ctx.current_room is not room:
        ctx.current_room.disconnect(ctx.connection_id)
        await broadcast_game_state(ctx.current_room)

    async with room.game_lock:
        try:
            player, reconnected = room.join(player_name, ctx.connection_id, ctx.websocket)
        except RoomError as e:
            await send_error(ctx, str(e))
            return

    ctx.current_room = room
    ctx.player_index = player.player_index
    room_manager.register(ctx.connection_id, room.game_id, player.player_index)

    logger.with_context(game_id=room.game_id, player_index=player.player_index).info(
        f"{player.name} {'reconnected' if reconnected else 'joined'}"
    )
    await broadcast_game_state(room)


async def handle_start_game(data: dict, ctx: ConnectionContext, *, broadcast_game_state, game_defaults: dict, game_store=None, **kw) -> None:
    room = ctx.current_room
    if room is None:
        await send_error(ctx, "Join a game first")
        return

    async with room.game_lock:
        try:
            config = room.new_game_config(**game_defaults)
        except (RoomError, ValueError) as e:
            await send_error(ctx, str(e))
            return

        if game_store is not None:
            try:
                await game_store.create_game(room.game_id, config, room.player_names())
            except ConcurrencyError as e:
                await send_error(ctx, str(e))
                return

        room.start(config)

    logger.with_context(game_id=room.game_id).info(
        f"Game started with {config.num_players} players"
    )
    await broadcast_game_state(room)


# ---------------------------------------------------------------------------
# Turn action handler
# ---------------------------------------------------------------------------

async def handle_player_action(data: dict, ctx: ConnectionContext, *, broadcast_game_state, game_store=None, **kw) -> None:
    room = ctx.current_room
    if room is None or ctx.player_index is None:
        await send_error(ctx, "Join a game first")
        return

    try:
        action = PlayerAction.from_dict(data.get("action") or {})
    except ValueError as e:
        await send_error(ctx, str(e), code="invalid_action")
        return

    log = logger.with_context(game_id=room.game_id, player_index=ctx.player_index)

    async with room.game_lock:
        if room.game is None:
            await send_error(ctx, "No game in progress")
            return
        try:
            room.game.validate(ctx.player_index, action)
        except EngineError as e:
            log.debug(f"Rejected {action.describe()}: {e}")
            await send_error(ctx, str(e), code=e.code)
            return

        # Persist before applying so an accepted action is never lost
        if game_store is not None:
            try:
                await game_store.save_action(
                    room.game_id, room.game.state.turn, ctx.player_index, action
                )
            except ConcurrencyError as e:
                log.warning(f"Duplicate turn: {e}")
                await send_error(ctx, str(e), code="concurrency")
                return

        try:
            batch = room.play(ctx.player_index, action)
        except (EngineError, RoomError) as e:
            log.error(f"Validated action failed to apply: {e}")
            await send_error(ctx, str(e), code=getattr(e, "code", None))
            return

    if batch.played_card_result is not None:
        log.info(f"{action.describe()}: {batch.played_card_result.value}")
    await broadcast_game_state(room)


# ---------------------------------------------------------------------------
# Connection lifecycle
# ---------------------------------------------------------------------------

async def handle_disconnect(ctx: ConnectionContext, *, room_manager, broadcast_game_state, **kw) -> None:
    """Mark the connection's seat as disconnected and tell the table."""
    room_manager.unregister(ctx.connection_id)
    room = ctx.current_room
    if room is None:
        return

    player = room.disconnect(ctx.connection_id)
    ctx.current_room = None
    ctx.player_index = None
    if player is not None:
        logger.with_context(game_id=room.game_id, player_index=player.player_index).info(
            f"{player.name} disconnected"
        )
        await broadcast_game_state(room)


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

HANDLERS = {
    "create_game": handle_create_game,
    "join": handle_join,
    "start_game": handle_start_game,
    "player_action": handle_player_action,
}
