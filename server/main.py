"""FastAPI WebSocket server for Hanabi."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from config import config
from handlers import HANDLERS, ConnectionContext, handle_disconnect
from logging_config import connection_id_var, setup_logging
from middleware import RequestIDMiddleware
from room import Room, RoomManager
from routers.games import router as games_router, set_game_store, set_room_manager
from routers.health import router as health_router, set_health_dependencies

# Initialize Sentry if configured
if config.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.starlette import StarletteIntegration

    sentry_sdk.init(
        dsn=config.SENTRY_DSN,
        environment=config.ENVIRONMENT,
        traces_sample_rate=0.1 if config.ENVIRONMENT == "production" else 1.0,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
    )
    logging.getLogger(__name__).info("Sentry error tracking initialized")

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)


room_manager = RoomManager(
    min_players=config.MIN_PLAYERS,
    max_players=config.MAX_PLAYERS_PER_ROOM,
)

# Game store (initialized in lifespan when POSTGRES_URL is set)
_game_store = None


async def _init_game_store():
    """Connect to PostgreSQL and wire the store into the routers."""
    global _game_store
    from stores.game_store import get_game_store

    _game_store = await get_game_store(config.POSTGRES_URL)
    set_game_store(_game_store)
    logger.info("Game store initialized")


async def _shutdown_services():
    """Gracefully shut down all services."""
    await _close_all_websockets()
    room_manager.rooms.clear()
    room_manager.connections.clear()

    if _game_store:
        from stores.game_store import close_game_store
        await close_game_store()
        logger.info("Game store closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for async service initialization."""
    if config.POSTGRES_URL:
        try:
            await _init_game_store()
        except Exception as e:
            logger.error(f"Failed to initialize game store: {e}")
            raise
    else:
        logger.warning("POSTGRES_URL not configured - games are kept in memory only")

    set_room_manager(room_manager)
    set_health_dependencies(
        db_pool=_game_store.pool if _game_store else None,
        room_manager=room_manager,
    )

    logger.info(f"Hanabi server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    await _shutdown_services()
    logger.info("Shutdown complete")


async def _close_all_websockets():
    """Close all active WebSocket connections gracefully."""
    for room in list(room_manager.rooms.values()):
        for player in room.players:
            if player.websocket is None:
                continue
            try:
                await player.websocket.close(code=1001, reason="Server shutting down")
            except Exception as e:
                logger.debug(f"Closing websocket for {player.name} failed: {e}")
    logger.info("All WebSocket connections closed")


app = FastAPI(
    title="Hanabi",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestIDMiddleware)

app.include_router(games_router)
app.include_router(health_router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    connection_id = str(uuid.uuid4())
    connection_id_var.set(connection_id)
    logger.debug(f"WebSocket connected as {connection_id}")

    ctx = ConnectionContext(websocket=websocket, connection_id=connection_id)

    # Shared dependencies passed to every handler
    handler_deps = dict(
        room_manager=room_manager,
        game_store=_game_store,
        game_defaults=config.game_defaults.to_overrides(),
        broadcast_game_state=broadcast_game_state,
    )

    try:
        while True:
            data = await websocket.receive_json()
            handler = HANDLERS.get(data.get("type"))
            if handler:
                await handler(data, ctx, **handler_deps)
            else:
                await websocket.send_json({
                    "type": "error",
                    "message": f"Unknown message type: {data.get('type')}",
                })
    except WebSocketDisconnect:
        await handle_disconnect(ctx, **handler_deps)


async def broadcast_game_state(room: Room):
    """Send each connected player in the room their own view of the game."""
    await room.broadcast_state()


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting Hanabi server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
