"""Composer manifest reading, migration and writing."""

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from ..constants import (
    CONTRIB_VENDOR,
    KNOWN_LIBRARY_PACKAGES,
    SEEDED_CORE_PACKAGES,
    UNKNOWN_VERSION_CONSTRAINT,
)
from ..models import LibraryRelocation, Manifest, MigrationResult, Project
from ..utils import build_path, caret_constraint, is_core_package, package_basename
from .exceptions import ManifestError

logger = structlog.get_logger()


def load_manifest_document(path: Path) -> dict[str, Any]:
    """Read a composer.json document, preserving key order.

    Raises:
        ManifestError: If the file is unreadable, not JSON, or not an object
    """
    try:
        with open(path, encoding="utf-8") as f:
            document = json.load(f)
    except json.JSONDecodeError as e:
        raise ManifestError(f"{path} is not valid JSON: {e}") from e
    except UnicodeDecodeError as e:
        raise ManifestError(f"{path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ManifestError(f"Cannot read {path}: {e}") from e

    if not isinstance(document, dict):
        raise ManifestError(f"{path} must contain a JSON object")
    return document


def manifest_from_document(document: Mapping[str, Any], source: str = "manifest") -> Manifest:
    """Build a Manifest from a decoded composer.json document."""
    for key in ("require", "require-dev"):
        section = document.get(key, {})
        # Composer writes empty sections as [] in some versions
        if section == []:
            continue
        if not isinstance(section, dict):
            raise ManifestError(f"{source}: '{key}' must be an object")
        for package, constraint in section.items():
            if not isinstance(constraint, str):
                raise ManifestError(f"{source}: constraint for '{package}' in '{key}' must be a string")

    extra = document.get("extra", {})
    if extra == []:
        extra = {}
    if not isinstance(extra, dict):
        raise ManifestError(f"{source}: 'extra' must be an object")

    try:
        return Manifest(
            require=document.get("require") or {},
            require_dev=document.get("require-dev") or {},
            extra=extra,
        )
    except ValidationError as e:
        raise ManifestError(f"{source}: {e}") from e


def load_manifest(path: Path | str) -> Manifest:
    """Load a source manifest; a missing file is an empty manifest."""
    path = Path(path)
    if not path.exists():
        logger.info("No manifest found, starting from an empty one", path=str(path))
        return Manifest()
    return manifest_from_document(load_manifest_document(path), source=str(path))


def render_manifest(manifest: Manifest, base: Mapping[str, Any] | None = None) -> str:
    """Serialize a manifest over an optional base document.

    Top-level keys of the base document (the target upstream's composer.json)
    are kept in place. ``require`` is replaced; ``require-dev`` and ``extra``
    are merged with the base document's entries taking precedence.
    """
    document: dict[str, Any] = dict(base or {})
    document["require"] = dict(manifest.require)

    require_dev = dict(document.get("require-dev") or {})
    for package, constraint in manifest.require_dev.items():
        require_dev.setdefault(package, constraint)
    if require_dev:
        document["require-dev"] = require_dev

    extra = dict(document.get("extra") or {})
    for key, value in manifest.extra.items():
        extra.setdefault(key, value)
    if extra:
        document["extra"] = extra

    return json.dumps(document, indent=4, ensure_ascii=False) + "\n"


def write_manifest(path: Path, manifest: Manifest) -> None:
    """Write a manifest to path, overlaying any composer.json already there."""
    base = load_manifest_document(path) if path.exists() else None
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_manifest(manifest, base))


class ManifestMigrator:
    """Builds a Composer-managed target manifest from a site's source manifest.

    The source manifest is never modified; every call synthesizes a new
    Manifest, and identical inputs produce identical output.
    """

    def __init__(
        self,
        contrib_vendor: str = CONTRIB_VENDOR,
        core_packages: Mapping[str, str] | None = None,
        library_packages: Mapping[str, tuple[str, str]] | None = None,
    ):
        self.contrib_vendor = contrib_vendor
        self.core_packages = dict(SEEDED_CORE_PACKAGES if core_packages is None else core_packages)
        self.library_packages = dict(KNOWN_LIBRARY_PACKAGES if library_packages is None else library_packages)
        self.logger = logger.bind(component="manifest_migrator")

    def is_core_package(self, package: str) -> bool:
        return is_core_package(package, frozenset(self.core_packages))

    def contrib_package(self, project: Project) -> str:
        return f"{self.contrib_vendor}/{project.name}"

    def covered_packages(self, contrib: Iterable[Project]) -> set[str]:
        """Package names a detected contrib project stands for."""
        covered = set()
        for project in contrib:
            covered.add(self.contrib_package(project))
            covered.add(f"{CONTRIB_VENDOR}/{project.name}")
        return covered

    def extra_packages(self, source: Manifest, contrib: Iterable[Project] = ()) -> list[str]:
        """Packages the site owner required directly, in source order."""
        covered = self.covered_packages(contrib)
        return [
            package
            for package in source.require
            if not self.is_core_package(package) and package not in covered
        ]

    def migrate(
        self,
        source: Manifest,
        contrib: Iterable[Project],
        libraries: Iterable[str],
        library_backup_dir: Path | str,
    ) -> MigrationResult:
        """Produce the target manifest.

        Args:
            source: Parsed source manifest (read only)
            contrib: Detected contrib projects
            libraries: Detected library directory names
            library_backup_dir: Repository-relative directory that receives
                libraries with no known package

        Returns:
            MigrationResult holding the new manifest and the library
            mapping/relocation decisions
        """
        contrib = list(contrib)
        warnings: list[str] = []
        require: dict[str, str] = dict(self.core_packages)

        for project in contrib:
            package = self.contrib_package(project)
            if package in require:
                continue
            constraint = caret_constraint(project.version)
            if constraint is None:
                constraint = UNKNOWN_VERSION_CONSTRAINT
                message = f"Unknown version for {project.name}, requiring {package} at '{constraint}'"
                warnings.append(message)
                self.logger.warning(
                    "Unknown contrib version", project=project.name, package=package, version=project.version
                )
            require[package] = constraint

        extra_packages = self.extra_packages(source, contrib)
        for package in extra_packages:
            require.setdefault(package, source.require[package])
        if extra_packages:
            self.logger.info("Carrying packages required directly by the site", packages=extra_packages)

        mapped: dict[str, str] = {}
        relocated: list[LibraryRelocation] = []
        for library in libraries:
            package = self._resolve_library(library, extra_packages)
            if package is None:
                destination = build_path(str(library_backup_dir), library)
                relocated.append(LibraryRelocation(name=library, destination=destination))
                warnings.append(f"No package known for library {library}, relocating to {destination}")
                self.logger.warning("Library has no known package, relocating", library=library, destination=destination)
                continue
            mapped[library] = package
            if package not in require:
                require[package] = self.library_packages[library][1]

        target = Manifest(require=require, require_dev=dict(source.require_dev), extra=dict(source.extra))
        return MigrationResult(
            manifest=target,
            mapped_libraries=mapped,
            relocated_libraries=relocated,
            extra_packages=extra_packages,
            warnings=warnings,
        )

    def _resolve_library(self, library: str, extra_packages: list[str]) -> str | None:
        """Find the package for a library: required by the site, else the known table."""
        for package in extra_packages:
            if package_basename(package) == library:
                return package
        known = self.library_packages.get(library)
        return known[0] if known else None
