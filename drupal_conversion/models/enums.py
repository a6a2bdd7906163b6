"""Enum definitions for conversion models."""

from enum import Enum


class ProjectKind(Enum):
    """Provenance of a Drupal module, theme or library."""

    CORE_MODULE = "core_module"
    CORE_THEME = "core_theme"
    CONTRIB_MODULE = "contrib_module"
    CONTRIB_THEME = "contrib_theme"
    CUSTOM_MODULE = "custom_module"
    CUSTOM_THEME = "custom_theme"
    LIBRARY = "library"

    @property
    def is_custom(self) -> bool:
        return self in (ProjectKind.CUSTOM_MODULE, ProjectKind.CUSTOM_THEME)

    @property
    def is_contrib(self) -> bool:
        return self in (ProjectKind.CONTRIB_MODULE, ProjectKind.CONTRIB_THEME)


class StepId(Enum):
    """Conversion steps, in execution order."""

    CREATE_BRANCH = "create_branch"
    COPY_CONFIG = "copy_config"
    COPY_PANTHEON_CONFIG = "copy_pantheon_config"
    COPY_CUSTOM_CODE = "copy_custom_code"
    COPY_SETTINGS = "copy_settings"
    WRITE_MANIFEST = "write_manifest"
    PUSH = "push"
    POST_DEPLOY_COMMANDS = "post_deploy_commands"


class StepOutcome(Enum):
    """Outcome of a single conversion step."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class WorkflowStatus(Enum):
    """Lifecycle of a conversion run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_WARNINGS = "completed_with_warnings"
    ABORTED = "aborted"
