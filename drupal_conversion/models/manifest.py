"""Dependency manifest models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Manifest(BaseModel):
    """Composer manifest subset the conversion reads and writes.

    Mapping order is significant and preserved end to end.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    require: dict[str, str] = Field(default_factory=dict)
    require_dev: dict[str, str] = Field(default_factory=dict, alias="require-dev")
    extra: dict[str, Any] = Field(default_factory=dict)


class LibraryRelocation(BaseModel):
    """A library with no known package, to be moved out of the webroot."""

    model_config = ConfigDict(frozen=True)

    name: str
    destination: str


class MigrationResult(BaseModel):
    """Target manifest plus the bookkeeping produced while building it."""

    model_config = ConfigDict(frozen=True)

    manifest: Manifest
    mapped_libraries: dict[str, str] = Field(default_factory=dict)
    relocated_libraries: list[LibraryRelocation] = Field(default_factory=list)
    extra_packages: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
