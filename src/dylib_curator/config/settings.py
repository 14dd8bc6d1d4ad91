"""
Settings for DylibCurator with environment and .env support.

Every field can be overridden with a DYLIB_CURATOR_ prefixed environment
variable, e.g. DYLIB_CURATOR_SCRATCH_ROOT or DYLIB_CURATOR_LOG_LEVEL.

© 2026 MBP LLC. All rights reserved.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_scratch_root() -> Path:
    return Path.home() / ".dylib_curator" / "ExtractedDylibs"


class CuratorSettings(BaseSettings):
    """Runtime settings for extraction and curation."""

    scratch_root: Path = Field(
        default_factory=_default_scratch_root,
        description="Directory under which each application gets its own staging folder",
    )
    library_suffixes: List[str] = Field(
        default=[".dylib"],
        description="Name suffixes that mark a file as a dynamic library",
    )
    max_workers: int = Field(default=4, ge=1, description="Copy worker threads per extraction")

    # Logging
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = Field(default=None)
    log_to_console: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_prefix="DYLIB_CURATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("scratch_root", mode="after")
    @classmethod
    def expand_scratch_root(cls, v: Path) -> Path:
        return v.expanduser()

    @field_validator("library_suffixes")
    @classmethod
    def validate_suffixes(cls, v: List[str]) -> List[str]:
        """Lower-case suffixes and make sure each starts with a dot."""
        if not v:
            raise ValueError("At least one library suffix is required")
        normalized = []
        for suffix in v:
            suffix = suffix.strip().lower()
            if not suffix.startswith(".") or len(suffix) < 2:
                raise ValueError(f"Invalid library suffix: {suffix!r}")
            normalized.append(suffix)
        return normalized

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> CuratorSettings:
    """Get application settings (cached singleton)."""
    load_dotenv()
    return CuratorSettings()
