"""Configuration loading for the SuiteSync test-model engine.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed access to all settings

Every variable is prefixed with ``SUITESYNC_``. List and mapping
settings are given as JSON, e.g.
``SUITESYNC_CONFIG_FILE_NAMES='["playwright.config.ts"]'``.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.
    """

    model_config = SettingsConfigDict(
        env_prefix="SUITESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Workspace
    workspace_folder: str = Field(
        default="./",
        description="Folder searched for runner configuration files",
    )
    config_file_names: list[str] = Field(
        default=[
            "playwright.config.ts",
            "playwright.config.js",
            "playwright.config.mts",
            "playwright.config.mjs",
        ],
        description="File names recognized as runner configurations",
    )

    # Runner
    node_executable: str = Field(
        default="node",
        description="Node binary used to start the runner",
    )
    runner_package: str = Field(
        default="@playwright/test",
        description="Package under node_modules that provides cli.js",
    )
    runner_mode: Literal["cli", "server"] = Field(
        default="cli",
        description="One runner process per call, or one persistent test server",
    )
    runner_timeout_seconds: int = Field(
        default=60,
        description="Timeout for listing and lookup commands",
    )
    reporter_module: str = Field(
        default="",
        description="Reporter module the runner loads to stream events back",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for runner processes",
    )

    # Run behaviour
    reuse_browser: bool = Field(
        default=False,
        description="Run against a shared browser when an endpoint is available",
    )
    show_trace: bool = Field(
        default=False,
        description="Always record traces (ignored while reusing the browser)",
    )
    connect_ws_endpoint: str = Field(
        default="",
        description="Shared browser websocket endpoint handed out by run hooks",
    )
    debug_node_args: list[str] = Field(
        default=["--inspect-brk"],
        description="Node inspector flags for debug sessions",
    )
    is_under_test: bool = Field(
        default=False,
        description="Suppress headed browsers and the CI variable for self-tests",
    )

    # Persistence
    settings_db_path: str = Field(
        default="./data/suitesync.db",
        description="SQLite database holding enablement settings",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    # Run mode
    run_mode: Literal["list", "run", "watch"] = Field(
        default="list",
        description="Run mode",
    )

    @field_validator("runner_timeout_seconds")
    @classmethod
    def validate_runner_timeout(cls, v: int) -> int:
        """Ensure runner timeout is positive."""
        if v <= 0:
            raise ValueError("runner_timeout_seconds must be positive")
        return v

    @field_validator("config_file_names")
    @classmethod
    def validate_config_file_names(cls, v: list[str]) -> list[str]:
        """Ensure at least one configuration file name is recognized."""
        if not v:
            raise ValueError("config_file_names must not be empty")
        return v


def load_settings(env_file: str | None = None) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["Settings", "load_settings"]
