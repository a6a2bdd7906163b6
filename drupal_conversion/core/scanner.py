"""Codebase scanner classifying Drupal projects by provenance."""

from pathlib import Path
from typing import Any

import structlog
import yaml

from ..constants import (
    CONTRIB_SUBDIR,
    CORE_SUBDIR,
    CUSTOM_SUBDIR,
    INFO_FILE_SUFFIX,
    LIBRARIES_SUBDIR,
    MODULES_SUBDIR,
    PACKAGING_MARKER_KEYS,
    SITES_ALL,
    THEMES_SUBDIR,
)
from ..models import Project, ProjectKind, ScanResult
from ..utils import build_path, normalize_version
from .exceptions import ScanError

logger = structlog.get_logger()

# Directories searched for projects, relative to the Drupal root
PROJECT_BASES: tuple[tuple[str, ...], ...] = ((), SITES_ALL)

_KINDS = {
    (MODULES_SUBDIR, CONTRIB_SUBDIR): ProjectKind.CONTRIB_MODULE,
    (THEMES_SUBDIR, CONTRIB_SUBDIR): ProjectKind.CONTRIB_THEME,
    (MODULES_SUBDIR, CUSTOM_SUBDIR): ProjectKind.CUSTOM_MODULE,
    (THEMES_SUBDIR, CUSTOM_SUBDIR): ProjectKind.CUSTOM_THEME,
    (MODULES_SUBDIR, CORE_SUBDIR): ProjectKind.CORE_MODULE,
    (THEMES_SUBDIR, CORE_SUBDIR): ProjectKind.CORE_THEME,
}


class ProjectScanner:
    """Walks a Drupal root and classifies modules, themes and libraries.

    Classification is path based: anything under a ``custom`` directory is
    custom and anything under ``contrib`` is contrib. Projects placed directly
    in ``modules/`` or ``themes/`` are classified by the packaging marker the
    drupal.org packager writes into the info file. Scanning never writes to
    the filesystem.
    """

    def __init__(self):
        self.logger = logger.bind(component="project_scanner")

    def scan(self, root: Path | str) -> ScanResult:
        """Scan a Drupal root.

        Args:
            root: Absolute path of the Drupal installation (webroot-aware)

        Returns:
            ScanResult; empty when the root does not exist
        """
        root = Path(root)
        if not root.is_dir():
            self.logger.info("Drupal root not found, nothing to scan", root=str(root))
            return ScanResult()

        contrib: list[Project] = []
        custom: list[Project] = []
        for base in PROJECT_BASES:
            for type_dir in (MODULES_SUBDIR, THEMES_SUBDIR):
                parent = (*base, type_dir)
                contrib.extend(self._scan_container(root, (*parent, CONTRIB_SUBDIR), _KINDS[type_dir, CONTRIB_SUBDIR]))
                custom.extend(self._scan_container(root, (*parent, CUSTOM_SUBDIR), _KINDS[type_dir, CUSTOM_SUBDIR]))
                loose_contrib, loose_custom = self._scan_loose(root, parent, type_dir)
                contrib.extend(loose_contrib)
                custom.extend(loose_custom)

        core: list[Project] = []
        for type_dir in (MODULES_SUBDIR, THEMES_SUBDIR):
            core.extend(self._scan_container(root, (CORE_SUBDIR, type_dir), _KINDS[type_dir, CORE_SUBDIR]))

        result = ScanResult(
            contrib=self._unique(contrib),
            custom=custom,
            libraries=self._scan_libraries(root),
            core=core,
        )
        self.logger.info(
            "Scan complete",
            root=str(root),
            contrib=len(result.contrib),
            custom=len(result.custom),
            libraries=len(result.libraries),
            core=len(result.core),
        )
        return result

    def _list_dirs(self, directory: Path) -> list[Path]:
        """List subdirectories, sorted by name; unreadable directories count as empty."""
        if not directory.is_dir():
            return []
        try:
            return sorted(
                (entry for entry in directory.iterdir() if entry.is_dir() and not entry.name.startswith(".")),
                key=lambda entry: entry.name,
            )
        except OSError as e:
            self.logger.warning("Directory unreadable, skipping", path=str(directory), error=str(e))
            return []

    def _scan_container(self, root: Path, parts: tuple[str, ...], kind: ProjectKind) -> list[Project]:
        projects = []
        for directory in self._list_dirs(root.joinpath(*parts)):
            info = self._read_info(directory)
            name = directory.name
            version = None
            if not kind.is_custom:
                name = str(info.get("project") or directory.name)
                version = normalize_version(info.get("version"))
            if kind.is_contrib and version is None:
                self.logger.warning("Contrib project has no discoverable version", project=name, path=str(directory))
            projects.append(
                Project(name=name, kind=kind, version=version, path=build_path(*parts, directory.name))
            )
        return projects

    def _scan_loose(self, root: Path, parts: tuple[str, ...], type_dir: str) -> tuple[list[Project], list[Project]]:
        """Classify projects placed directly in modules/ or themes/ by their packaging marker."""
        contrib: list[Project] = []
        custom: list[Project] = []
        for directory in self._list_dirs(root.joinpath(*parts)):
            if directory.name in (CONTRIB_SUBDIR, CUSTOM_SUBDIR):
                continue
            if not self._info_files(directory):
                self.logger.debug("Not a project directory", path=str(directory))
                continue

            info = self._read_info(directory)
            path = build_path(*parts, directory.name)
            if any(key in info for key in PACKAGING_MARKER_KEYS):
                contrib.append(
                    Project(
                        name=str(info.get("project") or directory.name),
                        kind=_KINDS[type_dir, CONTRIB_SUBDIR],
                        version=normalize_version(info.get("version")),
                        path=path,
                    )
                )
            else:
                custom.append(Project(name=directory.name, kind=_KINDS[type_dir, CUSTOM_SUBDIR], path=path))
        return contrib, custom

    def _scan_libraries(self, root: Path) -> list[str]:
        names: list[str] = []
        for base in PROJECT_BASES:
            for directory in self._list_dirs(root.joinpath(*base, LIBRARIES_SUBDIR)):
                if directory.name not in names:
                    names.append(directory.name)
        return sorted(names)

    def _info_files(self, directory: Path) -> list[Path]:
        try:
            return sorted(directory.glob(f"*{INFO_FILE_SUFFIX}"))
        except OSError:
            return []

    def _read_info(self, directory: Path) -> dict[str, Any]:
        """Read the project's info file, preferring <dirname>.info.yml."""
        candidates = self._info_files(directory)
        preferred = directory / f"{directory.name}{INFO_FILE_SUFFIX}"
        if preferred in candidates:
            candidates = [preferred]
        for info_file in candidates:
            try:
                return self._load_info_file(info_file)
            except ScanError as e:
                self.logger.warning("Unreadable info file", path=str(info_file), error=str(e))
        return {}

    def _load_info_file(self, path: Path) -> dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise ScanError(f"Cannot read {path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _unique(self, projects: list[Project]) -> list[Project]:
        seen: set[str] = set()
        unique = []
        for project in projects:
            if project.name in seen:
                self.logger.info("Duplicate contrib project ignored", project=project.name, path=project.path)
                continue
            seen.add(project.name)
            unique.append(project)
        return unique
