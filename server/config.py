"""
Centralized configuration for the Hanabi game server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.game_defaults.num_hints)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from constants import DEFAULT_NUM_FUSES, DEFAULT_NUM_HINTS, MAX_PLAYERS, MIN_PLAYERS, SUIT_ORDER

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


@dataclass
class GameDefaults:
    """Default table settings for new games."""
    num_fuses: int = DEFAULT_NUM_FUSES
    num_hints: int = DEFAULT_NUM_HINTS
    num_suits: int = len(SUIT_ORDER)
    reject_trivial_hints: bool = False

    def to_overrides(self) -> dict:
        """Keyword overrides for GameConfig.for_players."""
        return {
            "num_fuses": self.num_fuses,
            "num_hints": self.num_hints,
            "num_suits": self.num_suits,
            "reject_trivial_hints": self.reject_trivial_hints,
        }


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Database (optional; without it games live in memory only)
    POSTGRES_URL: Optional[str] = None

    # Error tracking (optional)
    SENTRY_DSN: Optional[str] = None

    # Room settings
    MIN_PLAYERS: int = MIN_PLAYERS
    MAX_PLAYERS_PER_ROOM: int = MAX_PLAYERS

    # Game defaults
    game_defaults: GameDefaults = field(default_factory=GameDefaults)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 8000),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            POSTGRES_URL=get_env("POSTGRES_URL") or None,
            SENTRY_DSN=get_env("SENTRY_DSN") or None,
            MIN_PLAYERS=get_env_int("MIN_PLAYERS", MIN_PLAYERS),
            MAX_PLAYERS_PER_ROOM=get_env_int("MAX_PLAYERS_PER_ROOM", MAX_PLAYERS),
            game_defaults=GameDefaults(
                num_fuses=get_env_int("DEFAULT_NUM_FUSES", DEFAULT_NUM_FUSES),
                num_hints=get_env_int("DEFAULT_NUM_HINTS", DEFAULT_NUM_HINTS),
                num_suits=get_env_int("DEFAULT_NUM_SUITS", len(SUIT_ORDER)),
                reject_trivial_hints=get_env_bool("DEFAULT_REJECT_TRIVIAL_HINTS", False),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()


def reload_config() -> ServerConfig:
    """Reload configuration from environment (useful for testing)."""
    global config
    config = ServerConfig.from_env()
    return config
