"""Conversion workflow: scan, migrate and replay the conversion as checkpointed commits."""

from collections.abc import Callable
from pathlib import Path, PurePosixPath
from typing import Protocol

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field

from ..constants import (
    COMPOSER_JSON,
    CONFIG_SUBDIR,
    CUSTOM_SUBDIR,
    DRUSH_CACHE_REBUILD,
    DRUSH_UPDB,
    HTACCESS,
    LIBRARIES_SUBDIR,
    MODULES_SUBDIR,
    PANTHEON_YML,
    SETTINGS_PHP,
    SITES_ALL,
    SITES_DEFAULT,
    THEMES_SUBDIR,
    WEB_ROOT,
)
from ..models import (
    ConversionReport,
    DocrootLayout,
    Manifest,
    Project,
    ProjectKind,
    ScanResult,
    StepId,
    StepOutcome,
    StepResult,
    WorkflowStatus,
    WorkingCopy,
)
from ..utils import build_path
from .config_loader import detect_layout, enable_build_step
from .exceptions import ConfigurationError, ConversionError, GitError, ManifestError, StepError
from .git import Git
from .manifest import ManifestMigrator, load_manifest, write_manifest
from .scanner import ProjectScanner
from .settings import ConversionSettings

logger = structlog.get_logger()


class RemoteCommandRunner(Protocol):
    """Runs a drush command against the converted environment.

    Implementations raise a ConversionError subclass (e.g. CommandError) on failure.
    """

    def __call__(self, command: str) -> None: ...


class CustomCodeSource(BaseModel):
    """A custom code directory to carry over, relative to the Drupal root."""

    model_config = ConfigDict(frozen=True)

    subdir: str  # "modules" or "themes"
    path: str
    container: bool  # True for a "custom" directory holding several projects


class ConversionPlan(BaseModel):
    """Everything known about the site before any git mutation."""

    model_config = ConfigDict(frozen=True)

    layout: DocrootLayout
    working_copy: WorkingCopy
    scan: ScanResult
    source_manifest: Manifest
    has_config: bool = False
    has_pantheon_yml: bool = False
    library_paths: dict[str, str] = Field(default_factory=dict)
    custom_sources: list[CustomCodeSource] = Field(default_factory=list)


class ConversionStep(BaseModel):
    """One entry of the ordered step list."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    step_id: StepId
    action: Callable[[WorkingCopy], StepResult]
    required: bool = False


def custom_code_sources(custom: list[Project]) -> list[CustomCodeSource]:
    """Group custom projects into the directories that get copied, in scan order."""
    sources: list[CustomCodeSource] = []
    for project in custom:
        subdir = MODULES_SUBDIR if project.kind is ProjectKind.CUSTOM_MODULE else THEMES_SUBDIR
        parent = PurePosixPath(project.path).parent
        if parent.name == CUSTOM_SUBDIR:
            source = CustomCodeSource(subdir=subdir, path=str(parent), container=True)
        else:
            source = CustomCodeSource(subdir=subdir, path=project.path, container=False)
        if source not in sources:
            sources.append(source)
    return sources


class ConversionWorkflow:
    """Converts a non-Composer Drupal site checkout into a Composer-managed branch.

    Steps run strictly in order against one working copy. Optional steps that
    fail are recorded and the run continues; a failed required step aborts
    the run. Completed steps are never rolled back: each one commits on its
    own, so the branch history shows how far the conversion got.
    """

    def __init__(
        self,
        git: Git,
        settings: ConversionSettings | None = None,
        scanner: ProjectScanner | None = None,
        migrator: ManifestMigrator | None = None,
        remote_runner: RemoteCommandRunner | None = None,
    ):
        self.git = git
        self.settings = settings or ConversionSettings()
        self.scanner = scanner or ProjectScanner()
        self.migrator = migrator or ManifestMigrator(contrib_vendor=self.settings.contrib_vendor)
        self.remote_runner = remote_runner
        self.logger = logger.bind(component="conversion_workflow")

    def plan(self, site_path: Path | str) -> ConversionPlan:
        """Inspect the site checkout without modifying it.

        Raises:
            ConfigurationError: If pantheon.yml is invalid
            ManifestError: If composer.json is malformed
        """
        site_path = Path(site_path)
        layout = detect_layout(site_path)
        source_manifest = load_manifest(site_path / COMPOSER_JSON)

        self.logger.info("Detecting projects", drupal_root=str(layout.drupal_root))
        scan = self.scanner.scan(layout.drupal_root)
        self._log_scan(scan)

        extra_packages = self.migrator.extra_packages(source_manifest, scan.contrib)
        if extra_packages:
            self.logger.warning(
                "Composer was used to add packages to a non-Composer site; they will be carried over",
                packages=extra_packages,
            )

        library_paths = {}
        for library in scan.libraries:
            for parts in ((LIBRARIES_SUBDIR, library), (*SITES_ALL, LIBRARIES_SUBDIR, library)):
                if layout.absolute(*parts).is_dir():
                    library_paths[library] = layout.relative(*parts)
                    break

        return ConversionPlan(
            layout=layout,
            working_copy=WorkingCopy(path=site_path, branch=self.settings.default_branch),
            scan=scan,
            source_manifest=source_manifest,
            has_config=layout.absolute(*SITES_DEFAULT, CONFIG_SUBDIR).is_dir(),
            has_pantheon_yml=(site_path / PANTHEON_YML).is_file(),
            library_paths=library_paths,
            custom_sources=custom_code_sources(scan.custom),
        )

    def steps(
        self, plan: ConversionPlan, *, dry_run: bool = False, run_updb: bool = True, run_cr: bool = True
    ) -> list[ConversionStep]:
        """Build the ordered step list for a plan."""
        steps = [
            ConversionStep(step_id=StepId.CREATE_BRANCH, action=self._create_branch, required=True),
            ConversionStep(step_id=StepId.COPY_CONFIG, action=lambda wc: self._copy_config(wc, plan)),
            ConversionStep(step_id=StepId.COPY_PANTHEON_CONFIG, action=lambda wc: self._copy_pantheon_config(wc, plan)),
            ConversionStep(step_id=StepId.COPY_CUSTOM_CODE, action=lambda wc: self._copy_custom_code(wc, plan)),
            ConversionStep(step_id=StepId.COPY_SETTINGS, action=lambda wc: self._copy_settings(wc, plan)),
            ConversionStep(
                step_id=StepId.WRITE_MANIFEST, action=lambda wc: self._write_manifest(wc, plan), required=True
            ),
        ]
        if dry_run:
            steps.extend(
                ConversionStep(step_id=step_id, action=lambda wc, step_id=step_id: self._dry_run_skip(step_id))
                for step_id in (StepId.PUSH, StepId.POST_DEPLOY_COMMANDS)
            )
        else:
            steps.append(ConversionStep(step_id=StepId.PUSH, action=self._push))
            steps.append(
                ConversionStep(
                    step_id=StepId.POST_DEPLOY_COMMANDS,
                    action=lambda wc: self._post_deploy_commands(wc, run_updb=run_updb, run_cr=run_cr),
                )
            )
        return steps

    def run(
        self, site_path: Path | str, *, dry_run: bool = False, run_updb: bool = True, run_cr: bool = True
    ) -> ConversionReport:
        """Run the full conversion and return the per-step report."""
        report = ConversionReport(branch=self.settings.target_branch, dry_run=dry_run)

        try:
            plan = self.plan(site_path)
        except (ConfigurationError, ManifestError) as e:
            self.logger.error("Conversion aborted before any git change", error=str(e))
            report.status = WorkflowStatus.ABORTED
            report.error = str(e)
            return report

        report.contrib_projects = [project.describe() for project in plan.scan.contrib]
        report.custom_projects = [project.path for project in plan.scan.custom]
        report.libraries = list(plan.scan.libraries)
        report.status = WorkflowStatus.RUNNING

        working_copy = plan.working_copy
        status = WorkflowStatus.COMPLETED
        for step in self.steps(plan, dry_run=dry_run, run_updb=run_updb, run_cr=run_cr):
            result = self._run_step(step, working_copy)
            report.steps.append(result)
            if result.working_copy is not None:
                working_copy = result.working_copy
            if result.outcome is StepOutcome.FAILED:
                if step.required:
                    status = WorkflowStatus.ABORTED
                    report.error = result.error
                    break
                status = WorkflowStatus.COMPLETED_WITH_WARNINGS

        report.status = status
        self.logger.info("Conversion finished", status=status.value, branch=working_copy.branch, dry_run=dry_run)
        return report

    def _run_step(self, step: ConversionStep, working_copy: WorkingCopy) -> StepResult:
        self.logger.info("Running step", step=step.step_id.value)
        try:
            result = step.action(working_copy)
        except (ConversionError, OSError, yaml.YAMLError) as e:
            if step.required:
                self.logger.error("Required step failed", step=step.step_id.value, error=str(e))
            else:
                self.logger.warning("Step failed, continuing", step=step.step_id.value, error=str(e))
            return StepResult(step_id=step.step_id, outcome=StepOutcome.FAILED, required=step.required, error=str(e))
        return result.model_copy(update={"required": step.required})

    def _committed(self, step_id: StepId, commits: list[str], detail: str, nothing: str) -> StepResult:
        if commits:
            return StepResult(step_id=step_id, outcome=StepOutcome.SUCCESS, commits=commits, detail=detail)
        return StepResult(step_id=step_id, outcome=StepOutcome.SKIPPED, detail=nothing)

    def _create_branch(self, working_copy: WorkingCopy) -> StepResult:
        branched = self.git.branch_from(
            working_copy,
            self.settings.upstream_url,
            branch=self.settings.target_branch,
            remote_name=self.settings.upstream_remote,
            remote_branch=self.settings.upstream_branch,
        )
        return StepResult(
            step_id=StepId.CREATE_BRANCH,
            outcome=StepOutcome.SUCCESS,
            detail=f"Branch {branched.branch} created from {self.settings.upstream_url}",
            working_copy=branched,
        )

    def _copy_config(self, working_copy: WorkingCopy, plan: ConversionPlan) -> StepResult:
        source = plan.layout.relative(*SITES_DEFAULT, CONFIG_SUBDIR)
        if not plan.has_config:
            self.logger.info("Skipped copying configuration files: directory not found", path=source)
            return StepResult(
                step_id=StepId.COPY_CONFIG,
                outcome=StepOutcome.SKIPPED,
                detail=f"Default configuration files directory ({source}) not found",
            )

        self.git.checkout_path_from_ref(working_copy, self.settings.default_branch, source)
        source_dir = working_copy.path / source
        if not source_dir.is_dir():
            raise StepError(f"Configuration directory {source} missing after checkout")
        if any(not entry.name.startswith(".") for entry in source_dir.iterdir()):
            self.git.move(working_copy, f"{source}/*", CONFIG_SUBDIR)
        if (source_dir / HTACCESS).exists():
            self.git.remove(working_copy, build_path(source, HTACCESS), force=True)

        commit = self.git.commit_if_dirty(working_copy, "Pull in configuration from default git branch")
        return self._committed(
            StepId.COPY_CONFIG,
            [commit] if commit else [],
            f"Configuration moved from {source} to {CONFIG_SUBDIR}",
            "No configuration files found",
        )

    def _copy_pantheon_config(self, working_copy: WorkingCopy, plan: ConversionPlan) -> StepResult:
        if not plan.has_pantheon_yml:
            return StepResult(
                step_id=StepId.COPY_PANTHEON_CONFIG,
                outcome=StepOutcome.SKIPPED,
                detail=f"No {PANTHEON_YML} on {self.settings.default_branch}",
            )

        commits = []
        self.git.checkout_path_from_ref(working_copy, self.settings.default_branch, PANTHEON_YML)
        commit = self.git.commit_if_dirty(working_copy, f"Copy {PANTHEON_YML}")
        if commit:
            commits.append(commit)

        if enable_build_step(working_copy.path / PANTHEON_YML):
            commit = self.git.commit_if_dirty(working_copy, f"Add build_step:true to {PANTHEON_YML}")
            if commit:
                commits.append(commit)

        return self._committed(
            StepId.COPY_PANTHEON_CONFIG, commits, f"{PANTHEON_YML} copied with build_step enabled", "Already up to date"
        )

    def _copy_custom_code(self, working_copy: WorkingCopy, plan: ConversionPlan) -> StepResult:
        if not plan.custom_sources:
            self.logger.info("No custom projects (modules and themes) to copy")
            return StepResult(
                step_id=StepId.COPY_CUSTOM_CODE, outcome=StepOutcome.SKIPPED, detail="No custom projects to copy"
            )

        commits: list[str] = []
        failures: list[str] = []
        for source in plan.custom_sources:
            relative_path = plan.layout.relative(source.path)
            target = build_path(WEB_ROOT, source.subdir, CUSTOM_SUBDIR)
            try:
                self.git.checkout_path_from_ref(working_copy, self.settings.default_branch, relative_path)
                if not plan.layout.is_webroot:
                    if source.container:
                        self.git.move(working_copy, f"{relative_path}/*", target)
                    else:
                        self.git.move(working_copy, relative_path, build_path(target, PurePosixPath(source.path).name))
                commit = self.git.commit_if_dirty(working_copy, f"Copy custom {source.subdir} from {relative_path}")
            except (GitError, OSError) as e:
                self.logger.warning(
                    "Failed copying custom code", subdir=source.subdir, path=relative_path, error=str(e)
                )
                failures.append(f"{relative_path}: {e}")
                self._discard_checkout(working_copy, relative_path)
                continue
            if commit:
                commits.append(commit)
                self.logger.info("Copied custom code", subdir=source.subdir, path=relative_path)

        if failures:
            return StepResult(
                step_id=StepId.COPY_CUSTOM_CODE,
                outcome=StepOutcome.FAILED,
                commits=commits,
                error="Failed copying custom code from " + "; ".join(failures),
            )
        return self._committed(
            StepId.COPY_CUSTOM_CODE,
            commits,
            f"Copied {len(commits)} custom code director{'y' if len(commits) == 1 else 'ies'}",
            "Custom code already present",
        )

    def _discard_checkout(self, working_copy: WorkingCopy, relative_path: str) -> None:
        """Drop files a failed copy left behind so a later commit does not pick them up."""
        if not (working_copy.path / relative_path).exists():
            return
        try:
            self.git.remove(working_copy, relative_path, force=True)
        except (GitError, OSError) as e:
            self.logger.warning("Could not discard partial copy", path=relative_path, error=str(e))

    def _copy_settings(self, working_copy: WorkingCopy, plan: ConversionPlan) -> StepResult:
        source = plan.layout.relative(*SITES_DEFAULT, SETTINGS_PHP)
        self.git.checkout_path_from_ref(working_copy, self.settings.default_branch, source)
        if not plan.layout.is_webroot:
            self.git.move(working_copy, source, build_path(WEB_ROOT, *SITES_DEFAULT, SETTINGS_PHP), force=True)

        commit = self.git.commit_if_dirty(working_copy, f"Copy {SETTINGS_PHP}")
        return self._committed(
            StepId.COPY_SETTINGS, [commit] if commit else [], f"{SETTINGS_PHP} copied", f"{SETTINGS_PHP} unchanged"
        )

    def _write_manifest(self, working_copy: WorkingCopy, plan: ConversionPlan) -> StepResult:
        migration = self.migrator.migrate(
            plan.source_manifest,
            plan.scan.contrib,
            plan.scan.libraries,
            self.settings.library_backup_dir,
        )

        commits: list[str] = []
        for relocation in migration.relocated_libraries:
            source = plan.library_paths.get(relocation.name)
            if source is None:
                raise StepError(f"Library {relocation.name} not found in the site checkout")
            self.git.checkout_path_from_ref(working_copy, self.settings.default_branch, source)
            self.git.move(working_copy, source, relocation.destination)
        if migration.relocated_libraries:
            commit = self.git.commit_if_dirty(
                working_copy, f"Move libraries without a Composer package to {self.settings.library_backup_dir}"
            )
            if commit:
                commits.append(commit)

        write_manifest(working_copy.path / COMPOSER_JSON, migration.manifest)
        commit = self.git.commit_if_dirty(working_copy, f"Add contrib projects to {COMPOSER_JSON}")
        if commit:
            commits.append(commit)

        detail = (
            f"{len(migration.manifest.require)} packages required, "
            f"{len(migration.mapped_libraries)} libraries mapped, "
            f"{len(migration.relocated_libraries)} libraries relocated"
        )
        if migration.warnings:
            detail += "; " + "; ".join(migration.warnings)
        return self._committed(StepId.WRITE_MANIFEST, commits, detail, f"{COMPOSER_JSON} already up to date")

    def _dry_run_skip(self, step_id: StepId) -> StepResult:
        self.logger.warning("Skipped in dry run", step=step_id.value)
        return StepResult(step_id=step_id, outcome=StepOutcome.SKIPPED, detail="Skipped (dry run)")

    def _push(self, working_copy: WorkingCopy) -> StepResult:
        self.git.push(working_copy, self.settings.push_remote, force=True)
        return StepResult(
            step_id=StepId.PUSH,
            outcome=StepOutcome.SUCCESS,
            detail=f"Pushed {working_copy.branch} to {self.settings.push_remote}",
        )

    def _post_deploy_commands(self, working_copy: WorkingCopy, *, run_updb: bool, run_cr: bool) -> StepResult:
        commands = [command for command, enabled in ((DRUSH_UPDB, run_updb), (DRUSH_CACHE_REBUILD, run_cr)) if enabled]
        if not commands:
            return StepResult(
                step_id=StepId.POST_DEPLOY_COMMANDS, outcome=StepOutcome.SKIPPED, detail="No commands requested"
            )
        if self.remote_runner is None:
            return StepResult(
                step_id=StepId.POST_DEPLOY_COMMANDS,
                outcome=StepOutcome.SKIPPED,
                detail="No remote command runner configured",
            )

        for command in commands:
            self.logger.info("Running remote command", command=command, branch=working_copy.branch)
            self.remote_runner(command)
        return StepResult(
            step_id=StepId.POST_DEPLOY_COMMANDS,
            outcome=StepOutcome.SUCCESS,
            detail="Ran drush " + ", ".join(commands),
        )

    def _log_scan(self, scan: ScanResult) -> None:
        if scan.contrib:
            self.logger.info(
                "Contrib modules and themes detected",
                count=len(scan.contrib),
                projects=[project.describe() for project in scan.contrib],
            )
        else:
            self.logger.info("No contrib modules or themes detected")

        for project in scan.custom:
            self.logger.info("Custom project found", kind=project.kind.value, path=project.path)

        if scan.libraries:
            self.logger.info("Libraries detected", count=len(scan.libraries), libraries=scan.libraries)
        else:
            self.logger.info("No libraries detected")
