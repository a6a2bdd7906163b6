"""Detected Drupal project models."""

from pydantic import BaseModel, ConfigDict, Field

from .enums import ProjectKind


class Project(BaseModel):
    """A module, theme or library found in the codebase."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ProjectKind
    version: str | None = None  # None when no version could be discovered
    path: str = Field(description="Path relative to the Drupal root, posix separators")

    def describe(self) -> str:
        return f"{self.name} ({self.version or 'unknown'})"


class ScanResult(BaseModel):
    """Classification of a codebase by provenance."""

    model_config = ConfigDict(frozen=True)

    contrib: list[Project] = Field(default_factory=list)
    custom: list[Project] = Field(default_factory=list)
    libraries: list[str] = Field(default_factory=list)
    core: list[Project] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.contrib or self.custom or self.libraries)
