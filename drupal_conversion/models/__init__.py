"""Data models for Drupal site conversion."""

from .enums import ProjectKind, StepId, StepOutcome, WorkflowStatus  # noqa: F401
from .manifest import LibraryRelocation, Manifest, MigrationResult  # noqa: F401
from .project import Project, ScanResult  # noqa: F401
from .workflow import (  # noqa: F401
    ConversionReport,
    DocrootLayout,
    StepResult,
    WorkingCopy,
)

__all__ = [
    # Enums
    "ProjectKind",
    "StepId",
    "StepOutcome",
    "WorkflowStatus",
    # Project models
    "Project",
    "ScanResult",
    # Manifest models
    "LibraryRelocation",
    "Manifest",
    "MigrationResult",
    # Workflow models
    "ConversionReport",
    "DocrootLayout",
    "StepResult",
    "WorkingCopy",
]
