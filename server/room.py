"""
Room management for multiplayer Hanabi games.

This module is the session registry: which connection is which player in
which game. The rules engine knows nothing about connections; a Room owns
one Game and maps its seats to websockets.

A Room contains:
    - A game id like "teal-fox-a1B2" used to join
    - Seats (RoomPlayers), joined by display name
    - A lobby log ("X joined", "X reconnected", ...)
    - The Game once started, and a lock serializing its mutations
"""

import asyncio
import logging
import random
import secrets
import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from fastapi import WebSocket

from constants import MAX_PLAYERS, MIN_PLAYERS
from game import EffectBatch, Game
from models.actions import PlayerAction
from models.game_config import GameConfig
from views import project_game


logger = logging.getLogger(__name__)


COLORS = [
    "red", "blue", "green", "yellow", "orange", "purple",
    "pink", "grey", "white", "black", "teal",
]

ANIMALS = [
    "dog", "cat", "parrot", "elephant", "leopard", "tiger", "bear", "monkey",
    "horse", "cow", "rabbit", "dolphin", "penguin", "snake", "fox", "giraffe",
    "kangaroo", "owl", "wolf", "crocodile", "platypus", "raccoon", "chicken",
]


def generate_game_id() -> str:
    """Random game id of the form ``color-animal-xxxx``."""
    suffix = "".join(random.choices(string.ascii_letters + string.digits, k=4))
    return f"{random.choice(COLORS)}-{random.choice(ANIMALS)}-{suffix}"


class RoomError(Exception):
    """A lobby request that cannot be honored (full room, wrong status, ...)."""


class RoomStatus(str, Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    ENDED = "ended"


@dataclass
class RoomPlayer:
    """
    A seat in a room (lobby-level representation).

    Attributes:
        name: Display name, unique within the room.
        player_index: Seat index in the game.
        connection_id: Current connection, None while disconnected.
        websocket: Current WebSocket, None while disconnected.
    """

    name: str
    player_index: int
    connection_id: Optional[str] = None
    websocket: Optional[WebSocket] = None

    @property
    def connected(self) -> bool:
        return self.connection_id is not None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "player_index": self.player_index,
            "connected": self.connected,
        }


@dataclass
class Room:
    """
    A game lobby and, once started, its game.

    Attributes:
        game_id: Room identifier, also the persisted game id.
        players: Seats in join order.
        status: waiting, playing or ended.
        game: The Game, None while waiting.
        log: Lobby log lines.
        min_players: Players needed to start.
        max_players: Seats available.
        game_lock: asyncio.Lock serializing game mutations.
    """

    game_id: str
    players: list[RoomPlayer] = field(default_factory=list)
    status: RoomStatus = RoomStatus.WAITING
    game: Optional[Game] = None
    log: list[str] = field(default_factory=list)
    min_players: int = MIN_PLAYERS
    max_players: int = MAX_PLAYERS
    game_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    # -------------------------------------------------------------------------
    # Seats
    # -------------------------------------------------------------------------

    def join(
        self,
        name: str,
        connection_id: str,
        websocket: Optional[WebSocket] = None,
    ) -> tuple[RoomPlayer, bool]:
        """
        Seat a player by name, or reconnect an existing seat.

        A name already in the room reconnects to that seat, in any status.
        New names can only join while the room is waiting.

        Returns:
            Tuple of (seat, True if this was a reconnect).

        Raises:
            RoomError: If the name is empty, the game is in progress or the
                room is full.
        """
        name = name.strip()
        if not name:
            raise RoomError("Player name is required")

        existing = self.get_player_by_name(name)
        if existing is not None:
            existing.connection_id = connection_id
            existing.websocket = websocket
            self.log.append(f"{name} reconnected")
            return existing, True

        if self.status != RoomStatus.WAITING:
            raise RoomError("Game already started")
        if len(self.players) >= self.max_players:
            raise RoomError("Room is full")

        player = RoomPlayer(
            name=name,
            player_index=len(self.players),
            connection_id=connection_id,
            websocket=websocket,
        )
        self.players.append(player)
        self.log.append(f"{name} joined")
        return player, False

    def disconnect(self, connection_id: str) -> Optional[RoomPlayer]:
        """Mark the seat held by ``connection_id`` as disconnected."""
        player = self.get_player_by_connection(connection_id)
        if player is None:
            return None
        player.connection_id = None
        player.websocket = None
        self.log.append(f"{player.name} disconnected")
        return player

    def get_player_by_name(self, name: str) -> Optional[RoomPlayer]:
        return next((p for p in self.players if p.name == name), None)

    def get_player_by_connection(self, connection_id: str) -> Optional[RoomPlayer]:
        return next((p for p in self.players if p.connection_id == connection_id), None)

    def player_names(self) -> list[str]:
        return [p.name for p in self.players]

    def connected_count(self) -> int:
        return sum(1 for p in self.players if p.connected)

    # -------------------------------------------------------------------------
    # Game
    # -------------------------------------------------------------------------

    def new_game_config(self, seed: Optional[int] = None, **overrides) -> GameConfig:
        """
        Build the config for starting this room's game.

        Raises:
            RoomError: If the room is not waiting or has the wrong player count.
            ValueError: If the resulting config is not playable.
        """
        if self.status != RoomStatus.WAITING:
            raise RoomError("Game already started")
        if not self.min_players <= len(self.players) <= self.max_players:
            raise RoomError(
                f"Need {self.min_players}-{self.max_players} players to start, "
                f"have {len(self.players)}"
            )
        if seed is None:
            seed = secrets.randbits(63)
        config = GameConfig.for_players(len(self.players), seed, **overrides)
        config.validate(strict=True)
        return config

    def start(self, config: GameConfig) -> Game:
        """Deal a new game with ``config`` and mark the room playing."""
        game = Game(game_id=self.game_id)
        game.start(config)
        self.game = game
        self.status = RoomStatus.PLAYING
        self.log.append("Game started")
        return game

    def play(self, player_index: int, action: PlayerAction) -> EffectBatch:
        """
        Apply an action to the running game.

        Raises:
            RoomError: If no game is running.
            EngineError: If the engine rejects the action.
        """
        if self.game is None or self.status != RoomStatus.PLAYING:
            raise RoomError("No game in progress")
        batch = self.game.play(player_index, action)
        if batch.outcome is not None:
            self.status = RoomStatus.ENDED
            self.log.append(
                f"Game over: {'win' if batch.outcome.won else 'fail'}, score {batch.outcome.score}"
            )
        return batch

    # -------------------------------------------------------------------------
    # Messaging
    # -------------------------------------------------------------------------

    def lobby_dict(self) -> dict:
        return {
            "game_id": self.game_id,
            "status": self.status.value,
            "players": [p.to_dict() for p in self.players],
            "log": list(self.log),
        }

    def state_message(self, player: RoomPlayer) -> dict:
        """The game_state message for one seat: lobby info plus their snapshot."""
        message = {
            "type": "game_state",
            "lobby": self.lobby_dict(),
            "game": None,
        }
        if self.game is not None and self.game.state is not None:
            message["game"] = project_game(
                self.game, player.player_index, self.player_names()
            ).to_dict()
        return message

    async def broadcast_state(self) -> None:
        """Send every connected seat its own game_state message."""
        for player in self.players:
            if player.websocket is not None:
                await self.send_to(player, self.state_message(player))

    async def send_to(self, player: RoomPlayer, message: dict) -> None:
        """
        Send a message to one seat.

        Send failures are logged and otherwise ignored; the player gets the
        current state again when they reconnect.
        """
        if player.websocket is None:
            return
        try:
            await player.websocket.send_json(message)
        except Exception as e:
            logger.debug(f"Send to {player.name} in {self.game_id} failed: {e}")


class RoomManager:
    """
    Manages all active rooms and the connection registry.

    ``connections`` maps a connection id to the game it joined and its
    seat index. A single RoomManager instance is used by the server.
    """

    def __init__(self, min_players: int = MIN_PLAYERS, max_players: int = MAX_PLAYERS) -> None:
        self.rooms: dict[str, Room] = {}
        self.connections: dict[str, tuple[str, Optional[int]]] = {}
        self.min_players = min_players
        self.max_players = max_players

    def _generate_game_id(self, max_attempts: int = 100) -> str:
        """Generate a game id unused in memory."""
        for _ in range(max_attempts):
            game_id = generate_game_id()
            if game_id not in self.rooms:
                return game_id
        raise RuntimeError("Could not generate unique game id")

    def create_room(self, game_id: Optional[str] = None) -> Room:
        """
        Create a new waiting room.

        Args:
            game_id: Id to use (e.g. one already checked against the store);
                generated if omitted.
        """
        game_id = game_id or self._generate_game_id()
        if game_id in self.rooms:
            raise RoomError(f"Game {game_id} already exists")
        room = Room(game_id=game_id, min_players=self.min_players, max_players=self.max_players)
        self.rooms[game_id] = room
        return room

    def get_room(self, game_id: str) -> Optional[Room]:
        return self.rooms.get(game_id)

    def remove_room(self, game_id: str) -> None:
        room = self.rooms.pop(game_id, None)
        if room is None:
            return
        for connection_id, (joined_id, _) in list(self.connections.items()):
            if joined_id == game_id:
                del self.connections[connection_id]

    def restore_room(
        self,
        game_id: str,
        config: GameConfig,
        names: list[str],
        records: list,
    ) -> Room:
        """
        Rebuild a room from persisted data.

        Players start disconnected and reconnect by joining with their name.

        Raises:
            ValueError: If the history does not replay.
        """
        game = Game.replay(config, records, game_id=game_id)
        room = Room(
            game_id=game_id,
            players=[RoomPlayer(name=name, player_index=i) for i, name in enumerate(names)],
            status=RoomStatus.ENDED if game.outcome is not None else RoomStatus.PLAYING,
            game=game,
            min_players=self.min_players,
            max_players=self.max_players,
        )
        room.log.append("Game restored")
        self.rooms[game_id] = room
        logger.info(f"Restored game {game_id} at turn {game.state.turn}")
        return room

    async def load_room(self, game_id: str, game_store=None) -> Optional[Room]:
        """
        Find a room in memory or restore it from the store.

        Returns:
            The room, or None if the game is unknown.

        Raises:
            ValueError: If the stored history does not replay.
        """
        room = self.rooms.get(game_id)
        if room is not None or game_store is None:
            return room

        config = await game_store.get_game_config(game_id)
        if config is None:
            return None
        names = await game_store.get_players(game_id)
        records = await game_store.get_game_actions(game_id)

        # Another join may have restored the game while the reads were pending
        room = self.rooms.get(game_id)
        if room is not None:
            return room
        return self.restore_room(game_id, config, names, records)

    # -------------------------------------------------------------------------
    # Connection registry
    # -------------------------------------------------------------------------

    def register(self, connection_id: str, game_id: str, player_index: Optional[int]) -> None:
        self.connections[connection_id] = (game_id, player_index)

    def unregister(self, connection_id: str) -> Optional[tuple[str, Optional[int]]]:
        return self.connections.pop(connection_id, None)

    def room_for_connection(self, connection_id: str) -> Optional[Room]:
        entry = self.connections.get(connection_id)
        if entry is None:
            return None
        return self.rooms.get(entry[0])

    def player_index_for(self, connection_id: str) -> Optional[int]:
        entry = self.connections.get(connection_id)
        return entry[1] if entry else None
