"""Working copy, layout and run report models."""

from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field

from .enums import StepId, StepOutcome, WorkflowStatus


class WorkingCopy(BaseModel):
    """A local checkout bound to one active branch."""

    model_config = ConfigDict(frozen=True)

    path: Path
    branch: str


class DocrootLayout(BaseModel):
    """Where Drupal lives inside a repository."""

    model_config = ConfigDict(frozen=True)

    root: Path
    drupal_subpath: str = ""

    @property
    def is_webroot(self) -> bool:
        return bool(self.drupal_subpath)

    @property
    def drupal_root(self) -> Path:
        return self.root / self.drupal_subpath if self.drupal_subpath else self.root

    def relative(self, *parts: str) -> str:
        """Return a repository-relative, webroot-aware posix path."""
        prefix = (self.drupal_subpath,) if self.drupal_subpath else ()
        return str(PurePosixPath(*prefix, *parts))

    def absolute(self, *parts: str) -> Path:
        return self.drupal_root.joinpath(*parts)


class StepResult(BaseModel):
    """Outcome of one conversion step."""

    step_id: StepId
    outcome: StepOutcome
    required: bool = False
    commits: list[str] = Field(default_factory=list)
    detail: str = ""
    error: str | None = None
    working_copy: WorkingCopy | None = Field(default=None, exclude=True)  # set when a step switches branch

    @property
    def ok(self) -> bool:
        return self.outcome is not StepOutcome.FAILED


class ConversionReport(BaseModel):
    """Per-step report of a conversion run."""

    status: WorkflowStatus = WorkflowStatus.NOT_STARTED
    branch: str | None = None
    dry_run: bool = False
    steps: list[StepResult] = Field(default_factory=list)
    error: str | None = None
    contrib_projects: list[str] = Field(default_factory=list)
    custom_projects: list[str] = Field(default_factory=list)
    libraries: list[str] = Field(default_factory=list)

    def outcome_of(self, step_id: StepId) -> StepOutcome | None:
        for step in self.steps:
            if step.step_id is step_id:
                return step.outcome
        return None
