from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

try:
    from clip_validator import ScalePolicy
    from constants import BRIDGE_HOST, BRIDGE_PORT, DEFAULT_PROVIDER, PROVIDER_ANTHROPIC, PROVIDER_OPENROUTER
except ImportError:
    from .clip_validator import ScalePolicy
    from .constants import BRIDGE_HOST, BRIDGE_PORT, DEFAULT_PROVIDER, PROVIDER_ANTHROPIC, PROVIDER_OPENROUTER

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Runtime settings read from the environment and ``.env`` in the project root."""

    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    host: str = Field(default=BRIDGE_HOST, validation_alias="HOST")
    port: int = Field(default=BRIDGE_PORT, validation_alias="PORT")

    provider: str = Field(default=DEFAULT_PROVIDER, validation_alias="LLM_PROVIDER")
    model_name: Optional[str] = Field(default=None, validation_alias="LLM_MODEL")
    base_url: Optional[str] = Field(default=None, validation_alias="LLM_BASE_URL")
    api_key: Optional[str] = Field(default=None, validation_alias="LLM_API_KEY")

    anthropic_api_key: Optional[str] = Field(default=None, validation_alias="ANTHROPIC_API_KEY")
    anthropic_model: Optional[str] = Field(default=None, validation_alias="ANTHROPIC_MODEL")
    openrouter_api_key: Optional[str] = Field(default=None, validation_alias="OPENROUTER_API_KEY")

    strict_scale: bool = Field(default=False, validation_alias="STRICT_SCALE")
    snap_to_scale: bool = Field(default=True, validation_alias="SNAP_TO_SCALE")

    @property
    def provider_name(self) -> str:
        return (self.provider or DEFAULT_PROVIDER).strip().lower()

    @property
    def provider_api_key(self) -> Optional[str]:
        """Key for the active provider; the generic LLM_API_KEY wins when set.

        Empty values count as unset.
        """
        if self.api_key:
            return self.api_key
        if self.provider_name == PROVIDER_ANTHROPIC:
            return self.anthropic_api_key or None
        if self.provider_name == PROVIDER_OPENROUTER:
            return self.openrouter_api_key or None
        return None

    @property
    def provider_model(self) -> Optional[str]:
        if self.model_name:
            return self.model_name
        if self.provider_name == PROVIDER_ANTHROPIC:
            return self.anthropic_model or None
        return None

    @property
    def scale_policy(self) -> ScalePolicy:
        if self.snap_to_scale:
            return ScalePolicy.SNAP
        if self.strict_scale:
            return ScalePolicy.STRICT
        return ScalePolicy.OFF


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
