"""
PostgreSQL-backed game store for Hanabi.

A game is persisted as its configuration, its seated players and the
ordered log of accepted actions. That is all ``Game.replay`` needs to
rebuild the full state, so effects and snapshots are never stored.

Features:
- Optimistic concurrency via unique constraint on (game_id, turn_id)
- Game ids checked for uniqueness against the store
"""

import json
import logging
from typing import Optional

import asyncpg

from game import ActionRecord
from models.actions import PlayerAction
from models.game_config import GameConfig
from room import generate_game_id

logger = logging.getLogger(__name__)


class ConcurrencyError(Exception):
    """Raised when an action for the same turn was already saved."""
    pass


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS game_config (
    game_id TEXT PRIMARY KEY,
    num_players SMALLINT NOT NULL,
    hand_size SMALLINT NOT NULL,
    num_fuses SMALLINT NOT NULL,
    num_hints SMALLINT NOT NULL,
    starting_player SMALLINT NOT NULL,
    seed BIGINT NOT NULL,
    num_suits SMALLINT NOT NULL DEFAULT 5,
    reject_trivial_hints BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS player (
    game_id TEXT NOT NULL REFERENCES game_config(game_id) ON DELETE CASCADE,
    player_index SMALLINT NOT NULL,
    display_name TEXT NOT NULL,
    PRIMARY KEY (game_id, player_index)
);

CREATE TABLE IF NOT EXISTS game_log (
    game_id TEXT NOT NULL REFERENCES game_config(game_id) ON DELETE CASCADE,
    turn_id SMALLINT NOT NULL,
    player_index SMALLINT NOT NULL,
    player_action JSONB NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW(),

    UNIQUE(game_id, turn_id)
);

CREATE INDEX IF NOT EXISTS idx_game_log_game_turn ON game_log(game_id, turn_id);
"""


class GameStore:
    """
    PostgreSQL-backed persistence for game configs, players and actions.

    Uses asyncpg for async database access.
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @classmethod
    async def create(cls, postgres_url: str) -> "GameStore":
        """
        Create a GameStore with a new connection pool.

        Args:
            postgres_url: PostgreSQL connection URL.

        Returns:
            Configured GameStore instance.
        """
        pool = await asyncpg.create_pool(postgres_url, min_size=2, max_size=10)
        store = cls(pool)
        await store.initialize_schema()
        return store

    async def initialize_schema(self) -> None:
        """Create database tables if they don't exist."""
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
        logger.info("Game store schema initialized")

    async def close(self) -> None:
        await self.pool.close()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create_game(self, game_id: str, config: GameConfig, players: list[str]) -> str:
        """
        Persist a new game's config and seated players in one transaction.

        Args:
            game_id: Game identifier.
            config: Game configuration.
            players: Display names in seat order.

        Returns:
            The game id.

        Raises:
            ConcurrencyError: If the game id is already taken.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                try:
                    await conn.execute(
                        """
                        INSERT INTO game_config (
                            game_id, num_players, hand_size, num_fuses, num_hints,
                            starting_player, seed, num_suits, reject_trivial_hints
                        )
                        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                        """,
                        game_id,
                        config.num_players,
                        config.hand_size,
                        config.num_fuses,
                        config.num_hints,
                        config.starting_player,
                        config.seed,
                        config.num_suits,
                        config.reject_trivial_hints,
                    )
                except asyncpg.UniqueViolationError:
                    raise ConcurrencyError(f"Game {game_id} already exists")

                await conn.executemany(
                    """
                    INSERT INTO player (game_id, player_index, display_name)
                    VALUES ($1, $2, $3)
                    """,
                    [(game_id, index, name) for index, name in enumerate(players)],
                )

        logger.debug(f"Created game {game_id} with {len(players)} players")
        return game_id

    async def save_action(
        self,
        game_id: str,
        turn_id: int,
        player_index: int,
        action: PlayerAction,
    ) -> None:
        """
        Append one accepted action to the game log.

        Raises:
            ConcurrencyError: If an action for this turn already exists.
        """
        async with self.pool.acquire() as conn:
            try:
                await conn.execute(
                    """
                    INSERT INTO game_log (game_id, turn_id, player_index, player_action)
                    VALUES ($1, $2, $3, $4)
                    """,
                    game_id,
                    turn_id,
                    player_index,
                    json.dumps(action.to_dict()),
                )
            except asyncpg.UniqueViolationError:
                raise ConcurrencyError(
                    f"Turn {turn_id} already recorded for game {game_id}"
                )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_game_config(self, game_id: str) -> Optional[GameConfig]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM game_config WHERE game_id = $1",
                game_id,
            )
        if row is None:
            return None
        return GameConfig.from_dict(dict(row))

    async def get_players(self, game_id: str) -> list[str]:
        """Display names in seat order."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT display_name FROM player
                WHERE game_id = $1
                ORDER BY player_index ASC
                """,
                game_id,
            )
        return [row["display_name"] for row in rows]

    async def get_game_actions(self, game_id: str) -> list[ActionRecord]:
        """The game's accepted actions in turn order."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT turn_id, player_index, player_action FROM game_log
                WHERE game_id = $1
                ORDER BY turn_id ASC
                """,
                game_id,
            )
        return [self._row_to_record(row) for row in rows]

    async def game_exists(self, game_id: str) -> bool:
        async with self.pool.acquire() as conn:
            found = await conn.fetchval(
                "SELECT 1 FROM game_config WHERE game_id = $1",
                game_id,
            )
        return found is not None

    async def generate_unique_game_id(
        self,
        taken: Optional[set] = None,
        max_attempts: int = 100,
    ) -> str:
        """
        Generate a game id unused both in the store and in ``taken``.

        Args:
            taken: Ids already in use in memory.
        """
        taken = taken or set()
        for _ in range(max_attempts):
            game_id = generate_game_id()
            if game_id not in taken and not await self.game_exists(game_id):
                return game_id
        raise RuntimeError("Could not generate unique game id")

    def _row_to_record(self, row: asyncpg.Record) -> ActionRecord:
        action = row["player_action"]
        if isinstance(action, str):
            action = json.loads(action)
        return ActionRecord(
            turn=row["turn_id"],
            player_index=row["player_index"],
            action=PlayerAction.from_dict(action),
        )


# Global instance (lazily created)
_game_store: Optional[GameStore] = None


async def get_game_store(postgres_url: str) -> GameStore:
    """
    Get or create the global game store instance.

    Args:
        postgres_url: PostgreSQL connection URL.

    Returns:
        GameStore instance.
    """
    global _game_store
    if _game_store is None:
        _game_store = await GameStore.create(postgres_url)
    return _game_store


async def close_game_store() -> None:
    """Close the global game store connection."""
    global _game_store
    if _game_store is not None:
        await _game_store.close()
        _game_store = None
