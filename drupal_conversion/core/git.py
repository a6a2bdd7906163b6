"""Version-control primitives used to checkpoint a conversion.

Every operation takes the WorkingCopy explicitly and raises GitError on a
non-zero exit status. Nothing here swallows failures; callers decide which
failures are fatal.
"""

import glob
import os
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

import structlog

from ..models import WorkingCopy
from .exceptions import CommandError, GitError
from .subprocess_manager import SubprocessResult, run_command

logger = structlog.get_logger()

_GLOB_CHARS = "*?["


def has_glob(pattern: str) -> bool:
    return any(char in pattern for char in _GLOB_CHARS)


@runtime_checkable
class Git(Protocol):
    """Capability interface the conversion workflow depends on."""

    def branch_from(
        self,
        working_copy: WorkingCopy,
        remote_url: str,
        *,
        branch: str,
        remote_name: str,
        remote_branch: str,
    ) -> WorkingCopy: ...

    def checkout_path_from_ref(self, working_copy: WorkingCopy, ref: str, relative_path: str) -> None: ...

    def move(self, working_copy: WorkingCopy, src_glob: str, dst: str, *, force: bool = False) -> None: ...

    def remove(self, working_copy: WorkingCopy, path: str, *, force: bool = False) -> None: ...

    def commit_if_dirty(self, working_copy: WorkingCopy, message: str) -> str | None: ...

    def is_dirty(self, working_copy: WorkingCopy) -> bool: ...

    def push(self, working_copy: WorkingCopy, remote: str, *, force: bool = False) -> None: ...


class SubprocessGit:
    """Git capability backed by the git command line."""

    def __init__(self, executable: str = "git", timeout: float | None = None):
        self.executable = executable
        self.timeout = timeout
        self.logger = logger.bind(component="git")

    def _run(self, working_copy: WorkingCopy | Path, op: str, *args: str) -> SubprocessResult:
        cwd = working_copy.path if isinstance(working_copy, WorkingCopy) else working_copy
        cmd = [self.executable, *args]
        self.logger.debug("git", op=op, args=list(args), cwd=str(cwd))
        try:
            result = run_command(cmd, cwd=cwd, timeout=self.timeout, check=False)
        except CommandError as e:
            raise GitError(op, str(e)) from e

        if not result.success:
            raise GitError(op, result.error_message)
        return result

    def _rev_parse(self, working_copy: WorkingCopy, *args: str) -> str:
        return self._run(working_copy, "rev-parse", "rev-parse", *args).stdout.strip()

    def branch_from(
        self,
        working_copy: WorkingCopy,
        remote_url: str,
        *,
        branch: str,
        remote_name: str,
        remote_branch: str,
    ) -> WorkingCopy:
        """Fetch a remote and create (or reset) the working branch to track it.

        Returns:
            A WorkingCopy bound to the same path and the new branch
        """
        remotes = self._run(working_copy, "remote", "remote").stdout.split()
        if remote_name in remotes:
            self._run(working_copy, "remote", "remote", "set-url", remote_name, remote_url)
        else:
            self._run(working_copy, "remote", "remote", "add", remote_name, remote_url)

        self._run(working_copy, "fetch", "fetch", remote_name)

        target_ref = f"{remote_name}/{remote_branch}"
        branched = WorkingCopy(path=working_copy.path, branch=branch)

        current = self._rev_parse(working_copy, "--abbrev-ref", "HEAD")
        if current == branch and self._rev_parse(working_copy, "HEAD") == self._rev_parse(working_copy, target_ref):
            self.logger.info("Branch already matches remote", branch=branch, ref=target_ref)
            return branched

        self._run(working_copy, "checkout", "checkout", "--track", "-B", branch, target_ref)
        self.logger.info("Created branch from remote", branch=branch, ref=target_ref, remote_url=remote_url)
        return branched

    def checkout_path_from_ref(self, working_copy: WorkingCopy, ref: str, relative_path: str) -> None:
        """Restore a single path from a ref without touching unrelated paths."""
        self._run(working_copy, "checkout", "checkout", ref, "--", relative_path)

    def move(self, working_copy: WorkingCopy, src_glob: str, dst: str, *, force: bool = False) -> None:
        """Move tracked files; a glob source moves every match into the dst directory."""
        destination = working_copy.path / dst
        if has_glob(src_glob):
            matches = sorted(glob.glob(os.path.join(str(working_copy.path), src_glob)))
            sources = [PurePosixPath(Path(match).relative_to(working_copy.path)).as_posix() for match in matches]
            if not sources:
                raise GitError("mv", f"pathspec '{src_glob}' did not match any files")
            destination.mkdir(parents=True, exist_ok=True)
        else:
            sources = [src_glob]
            destination.parent.mkdir(parents=True, exist_ok=True)

        args = ["mv"]
        if force:
            args.append("-f")
        self._run(working_copy, "mv", *args, *sources, dst)

    def remove(self, working_copy: WorkingCopy, path: str, *, force: bool = False) -> None:
        args = ["rm", "-r", "-q"]
        if force:
            args.append("-f")
        self._run(working_copy, "rm", *args, "--", path)

    def is_dirty(self, working_copy: WorkingCopy) -> bool:
        return bool(self._run(working_copy, "status", "status", "--porcelain").stdout.strip())

    def commit_if_dirty(self, working_copy: WorkingCopy, message: str) -> str | None:
        """Stage everything and commit only when there is something to commit.

        Returns:
            The new commit hash, or None when the tree was clean
        """
        self._run(working_copy, "add", "add", "-A")
        if not self.is_dirty(working_copy):
            self.logger.debug("Nothing to commit", message=message)
            return None

        self._run(working_copy, "commit", "commit", "-q", "-m", message)
        commit = self._rev_parse(working_copy, "HEAD")
        self.logger.info("Committed", commit=commit[:12], message=message)
        return commit

    def push(self, working_copy: WorkingCopy, remote: str, *, force: bool = False) -> None:
        args = ["push"]
        if force:
            args.append("--force")
        self._run(working_copy, "push", *args, remote, working_copy.branch)
