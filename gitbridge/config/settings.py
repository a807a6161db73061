"""Configuration settings models using Pydantic."""

import sys
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_GIT_DIR = Path(__file__).resolve().parent.parent / "git"


class GitConfig(BaseModel):
    """Configuration for the git executable."""

    command: str = "git"
    timeout_seconds: Optional[float] = Field(default=None, gt=0)

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("command cannot be empty")
        return v.strip()


class AuthConfig(BaseModel):
    """Configuration for the credential relay.

    Unset paths fall back to the running interpreter and the relay script
    shipped inside the package.
    """

    socket_dir: Optional[str] = None
    python_path: Optional[str] = None
    relay_path: Optional[str] = None
    askpass_path: Optional[str] = None

    @property
    def resolved_socket_dir(self) -> Optional[Path]:
        """Get the socket directory with ~ expanded, if configured."""
        if not self.socket_dir:
            return None
        return Path(self.socket_dir).expanduser()

    @property
    def resolved_python_path(self) -> str:
        return self.python_path or sys.executable

    @property
    def resolved_relay_path(self) -> Path:
        if self.relay_path:
            return Path(self.relay_path).expanduser()
        return PACKAGE_GIT_DIR / "relay.py"

    @property
    def resolved_askpass_path(self) -> Optional[Path]:
        """A preinstalled askpass wrapper. None means one is written per session."""
        if self.askpass_path:
            return Path(self.askpass_path).expanduser()
        return None


class LogConfig(BaseModel):
    """Configuration for logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    file: Optional[str] = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v

    @property
    def resolved_file(self) -> Optional[Path]:
        if not self.file:
            return None
        return Path(self.file).expanduser()


class Settings(BaseSettings):
    """Main gitbridge settings."""

    model_config = SettingsConfigDict(
        env_prefix="GITBRIDGE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    git: GitConfig = Field(default_factory=GitConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    log: LogConfig = Field(default_factory=LogConfig)
