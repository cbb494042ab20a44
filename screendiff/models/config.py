"""Configuration models for screendiff."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

CONFIG_ENV_VAR = "SCREENDIFF_CONFIG"

DEFAULT_METADATA_URL = "https://ddg-community.s3.amazonaws.com/metadata/repo_all.json.bz2"
DEFAULT_REMOTE_ENDPOINT = "wss://cdp.browserstack.com/playwright"


class ScreendiffConfig(BaseModel):
    # Locations
    screenshot_dir: str = Field(default_factory=lambda: str(Path.cwd() / "screenshots"))
    output_dir: str = Field(default_factory=lambda: str(Path.cwd() / "screenshots"))
    group_dir: str = Field(default_factory=lambda: str(Path.cwd()))
    group_builder_dir: str = Field(default_factory=lambda: str(Path.cwd()))
    action_dir: str = Field(default_factory=lambda: str(Path.cwd()))

    # Targets
    default_domain: str = "duckduckgo.com"
    metadata_url: str = DEFAULT_METADATA_URL

    # Scheduling and sessions
    max_parallel_tasks: int = Field(default=2, ge=1)
    max_session_uses: int = Field(default=20, ge=1)
    chromium_path: Optional[str] = None

    # Page loading
    page_load_timeout_seconds: float = 15
    ready_timeout_seconds: float = 5
    load_retries: int = Field(default=3, ge=0)
    retry_backoff_seconds: float = 5

    # Capture quality and diffing
    min_screenshot_bytes: int = 7500
    diff_tolerance: float = 0.1

    # Remote browser farm
    remote_endpoint: str = DEFAULT_REMOTE_ENDPOINT
    remote_username: Optional[str] = Field(default="env:SCREENDIFF_REMOTE_USERNAME", validate_default=True)
    remote_access_key: Optional[str] = Field(default="env:SCREENDIFF_REMOTE_ACCESS_KEY", validate_default=True)

    # Reporting
    report_base_url: str = ""

    @field_validator("remote_username", "remote_access_key", mode="before")
    @classmethod
    def resolve_env_credentials(cls, v: Optional[str]) -> Optional[str]:
        # unset variables resolve to None; remote sessions check for it
        if isinstance(v, str) and v.startswith("env:"):
            return os.environ.get(v[4:])
        return v

    @classmethod
    def load(cls, path: str | Path) -> "ScreendiffConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    @classmethod
    def from_env(cls) -> "ScreendiffConfig":
        """Load the file named by $SCREENDIFF_CONFIG, or fall back to defaults."""
        path = os.environ.get(CONFIG_ENV_VAR)
        if path:
            return cls.load(path)
        return cls()

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file.

        Remote credentials are left out so the file keeps reading them from
        the environment.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(exclude={"remote_username", "remote_access_key"}), f, indent=2)
