"""Configuration settings for sonardiff."""

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "SONARDIFF_"
API_KEY_ENV_VAR = f"{ENV_PREFIX}OPENAI_API_KEY"


def get_default_config_dir() -> Path:
    """Get platform-specific default config directory."""
    app_name = "sonardiff"

    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA")
        if not base:
            base = Path.home() / "AppData" / "Local"
        return Path(base) / app_name
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / app_name
    else:
        xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config_home:
            return Path(xdg_config_home) / app_name
        return Path.home() / ".config" / app_name


def get_global_env_file() -> Path:
    return get_default_config_dir() / ".env"


class Settings(BaseSettings):
    """Application settings with support for .env files."""

    model_config = SettingsConfigDict(
        env_file=[
            get_global_env_file(),
            ".env",
        ],
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix=ENV_PREFIX,
        extra="ignore",
    )

    openai_api_key: str = ""
    openai_base_url: str | None = Field(default=None, description="Override for OpenAI-compatible gateways")

    extraction_model: str = Field(default="gpt-5.2", description="Vision model used to read screenshots")
    comparison_model: str = Field(default="gpt-5-mini", description="Text model used to diff against the baseline")
    max_completion_tokens: int = Field(default=8192, description="Completion token cap for each request")

    debug_mode: bool = False

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key.strip())


def _read_env_lines(env_file: Path) -> list[str]:
    if not env_file.exists():
        return []
    return env_file.read_text(encoding="utf-8").splitlines()


def save_api_key(api_key: str, env_file: Path | None = None) -> Path:
    """Store the API key in the global .env file, replacing any previous value.

    Returns:
        Path of the file written
    """
    env_file = env_file or get_global_env_file()
    env_file.parent.mkdir(parents=True, exist_ok=True)

    lines = [line for line in _read_env_lines(env_file) if not line.upper().startswith(f"{API_KEY_ENV_VAR}=")]
    lines.append(f"{API_KEY_ENV_VAR}={api_key.strip()}")
    env_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_file


def clear_api_key(env_file: Path | None = None) -> bool:
    """Remove the stored API key from the global .env file.

    Returns:
        True if a key was removed
    """
    env_file = env_file or get_global_env_file()
    lines = _read_env_lines(env_file)
    kept = [line for line in lines if not line.upper().startswith(f"{API_KEY_ENV_VAR}=")]
    if len(kept) == len(lines):
        return False

    env_file.write_text("\n".join(kept) + "\n" if kept else "", encoding="utf-8")
    return True


settings = Settings()
