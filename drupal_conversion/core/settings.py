"""Conversion settings.

Provides centralized configuration using Pydantic BaseSettings with
environment variable (and .env file) support.
"""

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import (
    CONTRIB_VENDOR,
    DEFAULT_GIT_BRANCH,
    LIBRARIES_BACKUP_DIR,
    PUSH_REMOTE_NAME,
    TARGET_GIT_BRANCH,
    TARGET_UPSTREAM_BRANCH,
    TARGET_UPSTREAM_GIT_REMOTE_URL,
    TARGET_UPSTREAM_REMOTE_NAME,
)


class ConversionSettings(BaseSettings):
    """Conversion run configuration."""

    target_branch: str = Field(
        TARGET_GIT_BRANCH, alias="CONVERSION_TARGET_BRANCH", description="Branch the conversion is built on"
    )

    upstream_url: str = Field(
        TARGET_UPSTREAM_GIT_REMOTE_URL,
        alias="CONVERSION_UPSTREAM_URL",
        description="Git URL of the Composer-managed target upstream",
    )

    upstream_remote: str = Field(
        TARGET_UPSTREAM_REMOTE_NAME, alias="CONVERSION_UPSTREAM_REMOTE", description="Local name for the upstream remote"
    )

    upstream_branch: str = Field(
        TARGET_UPSTREAM_BRANCH, alias="CONVERSION_UPSTREAM_BRANCH", description="Upstream branch to branch from"
    )

    default_branch: str = Field(
        DEFAULT_GIT_BRANCH, alias="CONVERSION_DEFAULT_BRANCH", description="Pre-conversion branch of the site"
    )

    push_remote: str = Field(
        PUSH_REMOTE_NAME, alias="CONVERSION_PUSH_REMOTE", description="Remote the converted branch is pushed to"
    )

    library_backup_dir: str = Field(
        LIBRARIES_BACKUP_DIR,
        alias="CONVERSION_LIBRARY_BACKUP_DIR",
        description="Repository-relative directory for libraries without a package",
    )

    contrib_vendor: str = Field(
        CONTRIB_VENDOR, alias="CONVERSION_CONTRIB_VENDOR", description="Composer vendor for contrib projects"
    )

    git_executable: str = Field("git", alias="GIT_EXECUTABLE", description="Git binary")

    git_timeout: int | None = Field(
        None, alias="GIT_TIMEOUT", description="Per-invocation git timeout in seconds (None for no timeout)"
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


def load_settings(**overrides) -> ConversionSettings:
    """Load settings from .env, environment variables and explicit overrides."""
    load_dotenv()
    return ConversionSettings(**overrides)
