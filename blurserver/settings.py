"""
Server settings

Read from BLURSERVER_* environment variables and an optional .env file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .blur import coerce_radius
from .framing import CHUNK_SIZE, MAX_FRAME_SIZE


class AppSettings(BaseSettings):
    """
    Server settings

    Attributes:
        host: address the listening socket binds to
        port: TCP port
        image_dir: working directory for received and filtered images
        database_name: audit database file name inside image_dir
        max_frame_size: largest frame payload accepted, in bytes
        chunk_size: read size used while receiving a payload
        radius: initial blur radius, coerced to an odd value >= 1
        workers: number of blur bands, None for one per CPU
        log_level: logging level name
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BLURSERVER_",
        case_sensitive=False,
    )

    host: str = "0.0.0.0"
    port: int = Field(default=5000, ge=0, le=65535)

    image_dir: Path = Path("images")
    database_name: str = "index.db"

    max_frame_size: int = Field(default=MAX_FRAME_SIZE, gt=0)
    chunk_size: int = Field(default=CHUNK_SIZE, gt=0)

    radius: int = 3
    workers: int | None = Field(default=None, gt=0)

    log_level: str = "INFO"

    @field_validator("radius")
    @classmethod
    def _odd_radius(cls, value: int) -> int:
        return coerce_radius(value)

    @property
    def database_path(self) -> Path:
        return self.image_dir / self.database_name


@lru_cache
def get_settings() -> AppSettings:
    """Return a cached AppSettings instance so the environment is only parsed once."""
    return AppSettings()
