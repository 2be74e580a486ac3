from __future__ import annotations

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from heardle.dates import parse_canonical_day
from heardle.puzzle import DEFAULT_EPOCH
from heardle.selection import DEFAULT_DAILY_SALT


class GameConfig(BaseModel):
    """Daily puzzle configuration."""

    # First puzzle day (UTC); puzzle numbers count from here
    epoch: str = Field(default=DEFAULT_EPOCH)

    # How far a client-supplied date may stray from the server's UTC day
    date_tolerance_days: int = Field(default=1, ge=0, le=2)

    # Changing the salt reshuffles the daily songs of every artist
    daily_salt: str = Field(default=DEFAULT_DAILY_SALT, min_length=1)

    @field_validator("epoch")
    @classmethod
    def _check_epoch(cls, value: str) -> str:
        # Accept the ISO timestamp form used by older deployments
        day = value.strip().split("T", 1)[0]
        parse_canonical_day(day)
        return day


class CatalogConfig(BaseModel):
    """iTunes catalog configuration."""

    itunes_base_url: str = Field(default="https://itunes.apple.com")
    country: str = Field(default="us", min_length=2, max_length=2)
    limit: int = Field(default=200, ge=1, le=200)
    timeout_s: float = Field(default=15.0, ge=1.0)
    rate_limit_per_minute: float = Field(default=20.0, gt=0)
    require_preview: bool = Field(default=True)


class HttpCacheConfig(BaseModel):
    """HTTP response cache configuration."""

    directory: Path = Field(default=Path(".cache/heardle"))
    ttl_seconds: int = Field(default=86400, ge=0)
    enabled: bool = Field(default=True)


class LoggingConfig(BaseModel):
    level: str = Field(default="WARNING")  # DEBUG, INFO, WARNING, ERROR
    format: str = Field(default="%(message)s")


class ArtistConfig(BaseModel):
    """One playable artist."""

    id: str = Field(min_length=1)
    display_name: str
    itunes_artist_id: str | None = Field(default=None)
    search_terms: list[str] = Field(default_factory=list)

    @property
    def terms(self) -> list[str]:
        return self.search_terms or [self.display_name]


DEFAULT_ARTISTS = [
    ArtistConfig(
        id="twice",
        display_name="TWICE",
        itunes_artist_id="1203816887",
        search_terms=["TWICE", "트와이스"],
    ),
    ArtistConfig(
        id="le-sserafim",
        display_name="LE SSERAFIM",
        itunes_artist_id="1616740364",
        search_terms=["LE SSERAFIM", "르세라핌"],
    ),
]


def _env_flag(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


class Config(BaseModel):
    """
    Main configuration for heardle.

    Loads from TOML file with optional environment variable overrides.
    """

    game: GameConfig = Field(default_factory=GameConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    http_cache: HttpCacheConfig = Field(default_factory=HttpCacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    artists: list[ArtistConfig] = Field(default_factory=lambda: list(DEFAULT_ARTISTS))
    offline_mode: bool = Field(default=False)

    def get_artist(self, artist_id: str) -> ArtistConfig | None:
        key = artist_id.strip().lower()
        for artist in self.artists:
            if artist.id.lower() == key:
                return artist
        return None

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """
        Load configuration from TOML file with environment variable overrides.

        Environment variables take precedence and follow the pattern
        HEARDLE_<SECTION>_<KEY> (e.g., HEARDLE_GAME_EPOCH).

        All values are gathered into a single dictionary first, then validated
        by Pydantic to ensure consistent type checking and coercion.
        """
        config_dict: dict[str, object] = {}

        if config_path and config_path.exists():
            config_dict = tomllib.loads(config_path.read_text())

        config_dict = cls._merge_env_overrides(config_dict)
        return cls.model_validate(config_dict)

    @classmethod
    def _merge_env_overrides(cls, config_dict: dict[str, object]) -> dict[str, object]:
        """Return the dictionary with env vars applied, ready for Pydantic validation."""
        env_prefix = "HEARDLE_"

        if offline := os.getenv(f"{env_prefix}OFFLINE_MODE"):
            config_dict["offline_mode"] = _env_flag(offline)

        sections: dict[str, dict[str, str]] = {
            "game": {
                "EPOCH": "epoch",
                "DATE_TOLERANCE_DAYS": "date_tolerance_days",
                "DAILY_SALT": "daily_salt",
            },
            "catalog": {
                "ITUNES_BASE_URL": "itunes_base_url",
                "COUNTRY": "country",
                "LIMIT": "limit",
                "TIMEOUT_S": "timeout_s",
                "RATE_LIMIT_PER_MINUTE": "rate_limit_per_minute",
                "REQUIRE_PREVIEW": "require_preview",
            },
            "http_cache": {
                "DIRECTORY": "directory",
                "TTL_SECONDS": "ttl_seconds",
                "ENABLED": "enabled",
            },
            "logging": {
                "LEVEL": "level",
                "FORMAT": "format",
            },
        }
        flags = {"require_preview", "enabled"}

        # Start date name used by the web client deployments
        if start_date := os.getenv("NEXT_PUBLIC_HEARDLE_START_DATE_UTC"):
            game = config_dict.get("game")
            if not isinstance(game, dict):
                game = {}
                config_dict["game"] = game
            game["epoch"] = start_date

        for section, keys in sections.items():
            values = config_dict.setdefault(section, {})
            if not isinstance(values, dict):
                values = {}
                config_dict[section] = values

            for env_key, field_name in keys.items():
                env_value = os.getenv(f"{env_prefix}{section.upper()}_{env_key}")
                if env_value:
                    values[field_name] = _env_flag(env_value) if field_name in flags else env_value

        return config_dict


## Tests


def test_config_defaults():
    config = Config()
    assert config.offline_mode is False
    assert config.game.epoch == "2025-08-17"
    assert config.game.date_tolerance_days == 1
    assert config.catalog.country == "us"
    assert config.http_cache.directory == Path(".cache/heardle")
    assert [a.id for a in config.artists] == ["twice", "le-sserafim"]


def test_config_from_dict():
    config = Config.model_validate(
        {
            "game": {"epoch": "2025-01-01T00:00:00Z", "date_tolerance_days": 0},
            "artists": [{"id": "bts", "display_name": "BTS"}],
        }
    )
    assert config.game.epoch == "2025-01-01"
    assert config.game.date_tolerance_days == 0
    assert config.get_artist("BTS") is not None
    assert config.get_artist("BTS").terms == ["BTS"]  # pyright: ignore[reportOptionalMemberAccess]
    assert config.get_artist("twice") is None


def test_config_env_overrides(
    monkeypatch,  # pyright: ignore[reportMissingParameterType,reportUnknownParameterType]
):
    monkeypatch.setenv("HEARDLE_GAME_EPOCH", "2025-09-01")
    monkeypatch.setenv("HEARDLE_CATALOG_REQUIRE_PREVIEW", "false")
    monkeypatch.setenv("HEARDLE_HTTP_CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("HEARDLE_OFFLINE_MODE", "yes")

    config = Config.load()
    assert config.game.epoch == "2025-09-01"
    assert config.catalog.require_preview is False
    assert config.http_cache.ttl_seconds == 60
    assert config.offline_mode is True


def test_config_load_nonexistent_file():
    config = Config.load(Path("/nonexistent/heardle.toml"))
    assert config.game.epoch == "2025-08-17"
