"""Configuration settings for the video catalog service."""

from enum import Enum
from pathlib import Path

from pydantic import Field, SecretStr, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MissingRangePolicy(str, Enum):
    """How the stream endpoint answers a request without a Range header."""

    REJECT = "reject"
    FULL = "full"


class Settings(BaseSettings):
    """Application settings, storage locations and streaming limits."""

    model_config = SettingsConfigDict(
        env_prefix="VIDEO_CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @staticmethod
    def project_root(start: Path | None = None) -> Path:
        """Find the project root directory."""
        start = start or Path(__file__).resolve()
        for parent in start.parents:
            if (parent / ".git").exists() or (parent / "pyproject.toml").exists():
                return parent
        return Path.cwd()

    #  Storage
    data_dir: Path = Field(
        default_factory=lambda: Settings.project_root() / "data",
        description="Root for the catalog database and stored media",
    )
    # Derived from data_dir when unset
    video_dir: Path | None = None
    thumbnail_dir: Path | None = None
    db_path: Path | None = None
    log_dir: Path | None = None

    log_level: str = Field(default="INFO")

    #  Streaming
    stream_window_bytes: int = Field(
        default=1_000_000,
        gt=0,
        description="Bytes served for an open-ended range request",
    )
    transfer_chunk_bytes: int = Field(
        default=64 * 1024,
        gt=0,
        description="Largest single read while piping a window",
    )
    missing_range_policy: MissingRangePolicy = Field(
        default=MissingRangePolicy.REJECT
    )
    strict_range_parsing: bool = False

    #  Uploads
    allowed_video_extensions: set[str] = {
        ".mp4", ".mkv", ".webm", ".avi", ".mov", ".m4v",
    }
    allowed_thumbnail_extensions: set[str] = {
        ".jpg", ".jpeg", ".png", ".webp", ".gif",
    }

    #  Access
    operator_api_key: SecretStr | None = None

    #  Server
    host: str = "0.0.0.0"
    port: int = 4000

    @model_validator(mode="after")
    def _derive_paths(self) -> "Settings":
        if self.video_dir is None:
            self.video_dir = self.data_dir / "videos"
        if self.thumbnail_dir is None:
            self.thumbnail_dir = self.data_dir / "thumbnails"
        if self.db_path is None:
            self.db_path = self.data_dir / "db" / "catalog.sqlite"
        if self.log_dir is None:
            self.log_dir = self.project_root() / "logs"
        return self

    @computed_field
    @property
    def operator_gate_enabled(self) -> bool:
        """Whether operator-only routes can be unlocked at all."""
        return self.operator_api_key is not None

    def ensure_dirs(self) -> None:
        """Create the storage directories if missing."""
        for path in (self.video_dir, self.thumbnail_dir, self.db_path.parent):
            path.mkdir(parents=True, exist_ok=True)


settings = Settings()
