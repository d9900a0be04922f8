"""
Runtime settings with environment variable support
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from miniclawd.domain.models.profile import Profile, normalize_profile


class Settings(BaseSettings):
    """Agent runtime settings"""

    model_config = SettingsConfigDict(
        env_prefix="MINICLAWD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Profile
    profile: str = Field(default="HIGH_POWER", description="LOW_POWER, HIGH_POWER or CHAT (legacy aliases accepted)")

    # Loop bounds
    max_turns: int = Field(default=10, ge=1, description="Maximum generate/parse/dispatch turns per run")
    backend_timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout for one backend call")
    max_run_seconds: Optional[float] = Field(default=None, gt=0, description="Optional wall-clock budget per run")
    tool_timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Optional timeout per tool call")

    # Memory
    memory_path: Optional[Path] = Field(default=None, description="JSON file for conversation history")
    memory_key: str = Field(default="messages", description="Storage key for conversation history")
    eviction_floor: int = Field(default=10, ge=0, description="Messages kept even when over the size ceiling")
    low_power_max_messages: int = Field(default=20, ge=1)
    low_power_max_bytes: int = Field(default=50_000, ge=1)
    high_power_max_messages: int = Field(default=100, ge=1)
    high_power_max_bytes: int = Field(default=200_000, ge=1)

    # Behavior
    store_thoughts: bool = Field(default=False, description="Keep action thoughts in memory")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", description="console or json")

    @property
    def resolved_profile(self) -> Profile:
        return normalize_profile(self.profile)

    def limits_for(self, profile: Profile) -> Tuple[int, int]:
        """(max_messages, max_bytes) for a profile"""
        if normalize_profile(profile) is Profile.HIGH_POWER:
            return self.high_power_max_messages, self.high_power_max_bytes
        return self.low_power_max_messages, self.low_power_max_bytes


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
