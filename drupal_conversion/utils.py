"""Utility functions shared across the conversion engine."""

import re
from pathlib import PurePosixPath

from .constants import CORE_PACKAGE_NAMES, CORE_PACKAGE_PREFIXES

_CORE_PREFIX_RE = re.compile(r"^\d+\.x-(?!dev$)")
_DEV_BRANCH_RE = re.compile(r"^\d+(\.\d+)*\.x-dev$")
_VERSION_RE = re.compile(
    r"^v?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<stability>alpha|beta|rc)\.?(?P<number>\d+))?(?:\+.*)?$",
    re.IGNORECASE,
)


def build_path(*parts: str) -> str:
    """Join path parts into a posix path, ignoring empty parts.

    Example:
        >>> build_path("web", "", "modules", "custom")
        'web/modules/custom'
    """
    return str(PurePosixPath(*[part for part in parts if part]))


def normalize_version(version: str | None) -> str | None:
    """Strip the Drupal core compatibility prefix ("8.x-3.4" -> "3.4")."""
    if not version:
        return None
    version = str(version).strip()
    return _CORE_PREFIX_RE.sub("", version) or None


def caret_constraint(version: str | None) -> str | None:
    """Derive a Composer constraint from a detected project version.

    Stable releases become ``^major.minor``; pre-releases keep their full
    version so the stability flag survives; dev snapshots (``1.x-dev``) are
    emitted as the branch alias. Returns None when the version is unknown or
    cannot be parsed.

    Example:
        >>> caret_constraint("8.x-3.4")
        '^3.4'
        >>> caret_constraint("2.0.1-beta3")
        '^2.0.1-beta3'
    """
    version = normalize_version(version)
    if version is None:
        return None

    if _DEV_BRANCH_RE.match(version):
        return version

    match = _VERSION_RE.match(version)
    if not match:
        return None

    major = match.group("major")
    minor = match.group("minor") or "0"
    if match.group("stability"):
        patch = f".{match.group('patch')}" if match.group("patch") else ""
        stability = match.group("stability").lower()
        return f"^{major}.{minor}{patch}-{stability}{match.group('number')}"

    return f"^{major}.{minor}"


def package_basename(package: str) -> str:
    """Return the name segment of a vendor/name package identifier."""
    return package.rsplit("/", 1)[-1]


def is_core_package(package: str, seeded: frozenset[str] | set[str] | None = None) -> bool:
    """Check whether a package belongs to Drupal core or the upstream scaffolding."""
    package = package.lower()
    if package in CORE_PACKAGE_NAMES or (seeded and package in seeded):
        return True
    return package.startswith(CORE_PACKAGE_PREFIXES)
