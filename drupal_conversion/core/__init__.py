"""Conversion engine: scanning, manifest migration, git checkpointing and the workflow."""

from .exceptions import (  # noqa: F401
    CommandError,
    ConfigurationError,
    ConversionError,
    GitError,
    ManifestError,
    ScanError,
    StepError,
)
from .git import Git, SubprocessGit  # noqa: F401
from .manifest import ManifestMigrator, load_manifest, render_manifest, write_manifest  # noqa: F401
from .scanner import ProjectScanner  # noqa: F401
from .workflow import ConversionWorkflow  # noqa: F401

__all__ = [
    "CommandError",
    "ConfigurationError",
    "ConversionError",
    "ConversionWorkflow",
    "Git",
    "GitError",
    "ManifestError",
    "ManifestMigrator",
    "ProjectScanner",
    "ScanError",
    "StepError",
    "SubprocessGit",
    "load_manifest",
    "render_manifest",
    "write_manifest",
]
