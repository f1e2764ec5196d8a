"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from tubekiosk.domain.entities.catalog import SelectionSettings, Source

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class PlayerConfig(BaseModel):
    """Playback client settings (YAML section: player.*)."""

    server_url: str = Field(
        default="http://127.0.0.1:3000",
        description="Base URL of the selection server.",
    )
    request_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for /api/next and /api/played calls.",
    )
    preload_lead_seconds: float = Field(
        default=8.0,
        description="Fetch the next video this many seconds before the current one ends.",
    )
    max_item_seconds: float = Field(
        default=300.0,
        description="Hard ceiling per video; the item is skipped when reached.",
    )
    retry_seconds: float = Field(
        default=10.0,
        description="Delay before asking again after an empty or failed response.",
    )
    duplicate_retry_seconds: float = Field(
        default=2.0,
        description="Delay before re-prefetching when the server returned the current video.",
    )
    duration_poll_seconds: float = Field(
        default=2.0,
        description="Polling interval while the player does not know the duration yet.",
    )
    prefetch_debounce_seconds: float = Field(
        default=2.0,
        description="Minimum spacing between two prefetch attempts.",
    )
    short_item_delay_seconds: float = Field(
        default=0.5,
        description="Prefetch delay for videos shorter than the lead time.",
    )
    min_prefetch_delay_seconds: float = Field(
        default=0.2,
        description="Lower bound of the computed prefetch delay.",
    )
    schedule_error_retry_seconds: float = Field(
        default=5.0,
        description="Re-arm delay when the player cannot report its duration.",
    )
    mpv_path: str = Field(default="mpv", description="mpv executable.")
    ipc_path: Path = Field(
        default=Path("/tmp/tubekiosk-mpv.sock"),
        description="UNIX socket used for mpv JSON IPC.",
    )
    mpv_args: list[str] = Field(
        default_factory=lambda: ["--fullscreen", "--no-terminal", "--force-window=yes"],
        description="Extra command-line arguments passed to mpv.",
    )
    ytdl_format: str = Field(
        default="bestvideo[height<=1080]+bestaudio/best",
        description="youtube-dl/yt-dlp format selector handed to mpv.",
    )
    status_osd_ms: int = Field(
        default=12_000,
        ge=0,
        description="How long a status line stays on the mpv on-screen display.",
    )

    @field_validator("ipc_path", mode="before")
    @classmethod
    def _validate_ipc_path(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator(
        "request_timeout_seconds",
        "preload_lead_seconds",
        "max_item_seconds",
        "retry_seconds",
    )
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("value must be > 0")
        return v


class ChannelDocument(BaseModel):
    """One entry of ``config.json -> channels``."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: Optional[str] = None
    weight: Any = 1

    def to_source(self) -> Source:
        return Source(id=self.id, title=self.title or self.id, weight=self.weight)


class SelectionDocument(BaseModel):
    """The operator-edited ``config.json`` (camelCase keys, read per request)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    channels: list[ChannelDocument] = Field(default_factory=list)
    max_age_years: float = Field(default=2, alias="maxAgeYears")
    min_views: int = Field(default=0, alias="minViews")
    played_reset_days: float = Field(default=60, alias="playedResetDays")
    cache_ttl_minutes: float = Field(default=15, alias="cacheTtlMinutes")
    max_search_results: int = Field(default=100, alias="maxSearchResults")
    attempts_before_relax: int = Field(default=6, alias="attemptsBeforeRelax")
    min_duration_seconds: int = Field(default=0, alias="minDurationSeconds")
    port: Optional[int] = None

    @field_validator("channels", mode="before")
    @classmethod
    def _drop_invalid_channels(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("channels must be a list")
        return [c for c in v if isinstance(c, dict) and c.get("id")]

    def to_settings(self) -> SelectionSettings:
        return SelectionSettings(
            sources=tuple(channel.to_source() for channel in self.channels),
            max_age_years=self.max_age_years,
            min_views=self.min_views,
            played_reset_days=self.played_reset_days,
            cache_ttl_minutes=self.cache_ttl_minutes,
            max_search_results=self.max_search_results,
            attempts_before_relax=self.attempts_before_relax,
            min_duration_seconds=self.min_duration_seconds,
        )


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (server/storage/http/youtube/providers/
      player/logging).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    - Selection tuning (channels, filters) is NOT here: it lives in the
      ``config.json`` document under ``data_dir`` so it can change at runtime.
    """

    # General
    app_name: str = Field(default="tubekiosk", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # Server (YAML section: server.*)
    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("host", AliasPath("server", "host")),
        description="Bind host of the selection server.",
    )
    port: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("port", AliasPath("server", "port")),
        description="Bind port. If unset: config.json 'port', else 3000.",
    )

    # Storage (YAML section: storage.*)
    data_dir: Path = Field(
        default=Path("./data"),
        validation_alias=AliasChoices("data_dir", AliasPath("storage", "data_dir")),
        description="Directory holding config.json, played.json, channel_cache.json.",
    )

    # HTTP (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Timeout in seconds for YouTube requests.",
    )
    http_user_agent: str = Field(
        default="Tubekiosk/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # YouTube (YAML section: youtube.*)
    youtube_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "youtube_api_key",
            AliasPath("youtube", "api_key"),
        ),
        description="YouTube Data API v3 key. Falls back to credentials_path.",
    )
    youtube_credentials_path: Path = Field(
        default=Path("./credentials.json"),
        validation_alias=AliasChoices(
            "youtube_credentials_path",
            AliasPath("youtube", "credentials_path"),
        ),
        description="JSON file with a YOUTUBE_API_KEY entry.",
    )

    # Providers (YAML section: providers.*)
    breaker_failure_threshold: int = Field(
        default=3,
        validation_alias=AliasChoices(
            "breaker_failure_threshold",
            AliasPath("providers", "failure_threshold"),
        ),
        description="Consecutive failures before a provider is skipped.",
    )
    breaker_cooldown_seconds: float = Field(
        default=300.0,
        validation_alias=AliasChoices(
            "breaker_cooldown_seconds",
            AliasPath("providers", "cooldown_seconds"),
        ),
        description="How long a tripped provider is skipped.",
    )

    # Player client (YAML section: player.*)
    player: PlayerConfig = Field(default_factory=PlayerConfig)

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    @field_validator("data_dir", "youtube_credentials_path", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("http_timeout_seconds", "breaker_cooldown_seconds")
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("value must be > 0")
        return v

    @field_validator("breaker_failure_threshold")
    @classmethod
    def _validate_threshold(cls, v: int) -> int:
        if v < 1:
            raise ValueError("breaker_failure_threshold must be >= 1")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "server": {"host": self.host, "port": self.port},
            "storage": {"data_dir": str(self.data_dir)},
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "user_agent": self.http_user_agent,
            },
            "youtube": {
                "api_key": "***" if self.youtube_api_key else None,
                "credentials_path": str(self.youtube_credentials_path),
            },
            "providers": {
                "failure_threshold": self.breaker_failure_threshold,
                "cooldown_seconds": self.breaker_cooldown_seconds,
            },
            "player": self.player.model_dump(mode="json"),
            "logging": {"level": self.log_level, "format": self.log_format},
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read TUBEKIOSK_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - TUBEKIOSK_DATA_DIR
    - TUBEKIOSK_PORT
    - TUBEKIOSK_YOUTUBE_API_KEY
    - TUBEKIOSK_SERVER_URL
    - TUBEKIOSK_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="TUBEKIOSK_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    host: Optional[str] = None
    port: Optional[int] = None

    data_dir: Optional[Path] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None

    youtube_api_key: Optional[str] = None
    youtube_credentials_path: Optional[Path] = None

    breaker_failure_threshold: Optional[int] = None
    breaker_cooldown_seconds: Optional[float] = None

    server_url: Optional[str] = None
    mpv_path: Optional[str] = None
    ipc_path: Optional[Path] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    @field_validator("data_dir", "youtube_credentials_path", "ipc_path", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
