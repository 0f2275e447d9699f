"""Configuration management for the Math Render API."""

import json
import os
from functools import lru_cache
from typing import Any, Dict, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file if it exists
load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}

_ENV_VARS = {
    "engine_url": "MATHJAX_URL",
    "engine_timeout": "ENGINE_TIMEOUT",
    "engine_connect_retries": "ENGINE_CONNECT_RETRIES",
    "engine_defaults": "MJAX_SETTINGS",
    "allow_config_override": "ALLOW_CONFIG_OVERRIDE",
    "rasterizer": "RASTERIZER",
}


class Settings(BaseModel):
    """Process-wide settings; frozen once the process has started."""

    model_config = ConfigDict(frozen=True)

    # Typesetting engine
    engine_url: str = Field(
        default="http://localhost:8003/typeset",
        description="Endpoint of the MathJax rendering service",
    )
    engine_timeout: float = Field(
        default=30.0, description="Wall-clock limit in seconds for one conversion"
    )
    engine_connect_retries: int = Field(
        default=3, description="Attempts made when the engine refuses connections"
    )
    engine_defaults: Dict[str, Any] = Field(
        default_factory=dict, description="Default MathJax configuration (MJAX_SETTINGS)"
    )
    allow_config_override: bool = Field(
        default=True, description="Accept per-request engine configuration"
    )

    # Rasterization
    rasterizer: Literal["local", "engine"] = Field(
        default="local",
        description="Rasterize SVG locally with PyMuPDF, or ask the engine for PNG",
    )

    def __init__(self, **data):
        """Initialize settings with environment variable support."""
        for field_name, env_name in _ENV_VARS.items():
            if field_name in data:
                continue
            env_value = os.getenv(env_name)
            if env_value is None or env_value == "":
                continue
            data[field_name] = _from_env(field_name, env_value)

        super().__init__(**data)

    @field_validator("engine_url")
    @classmethod
    def validate_engine_url(cls, v):
        """Require an absolute http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("engine_url must be an http:// or https:// URL")
        return v

    @field_validator("engine_timeout")
    @classmethod
    def validate_engine_timeout(cls, v):
        """Validate timeout is within reasonable bounds."""
        if v <= 0 or v > 300:
            raise ValueError("engine_timeout must be greater than 0 and at most 300 seconds")
        return v

    @field_validator("engine_connect_retries")
    @classmethod
    def validate_engine_connect_retries(cls, v):
        if v < 1 or v > 10:
            raise ValueError("engine_connect_retries must be between 1 and 10")
        return v


def _from_env(field_name: str, value: str) -> Any:
    if field_name == "engine_defaults":
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"MJAX_SETTINGS is not valid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise ValueError("MJAX_SETTINGS must be a JSON object")
        return parsed
    if field_name == "allow_config_override":
        return value.strip().lower() in _TRUTHY
    return value


@lru_cache
def get_settings() -> Settings:
    """Get application settings (read once per process)."""
    return Settings()
