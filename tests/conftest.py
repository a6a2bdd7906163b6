"""Shared pytest fixtures for conversion tests."""

import glob
import json
import os
import shutil
from collections.abc import Callable
from pathlib import Path

import pytest
import structlog

from drupal_conversion.core.exceptions import GitError
from drupal_conversion.core.git import has_glob
from drupal_conversion.models import WorkingCopy

UPSTREAM_COMPOSER_JSON = {
    "name": "pantheon-upstreams/drupal-recommended",
    "type": "project",
    "require": {"drupal/core-recommended": "^9.2"},
    "extra": {
        "installer-paths": {"web/modules/contrib/{$name}": ["type:drupal-module"]},
    },
    "minimum-stability": "stable",
}

UPSTREAM_TREE = {
    "composer.json": json.dumps(UPSTREAM_COMPOSER_JSON, indent=4) + "\n",
    "pantheon.upstream.yml": "api_version: 1\nbuild_step: true\n",
    "web/sites/default/default.settings.php": "<?php\n",
}


def snapshot(root: Path) -> dict[str, str]:
    """Map every file under root to its contents, keyed by posix relative path."""
    tree = {}
    for path in sorted(root.rglob("*")):
        if path.is_file():
            tree[path.relative_to(root).as_posix()] = path.read_text(encoding="utf-8")
    return tree


def write_tree(root: Path, tree: dict[str, str]) -> None:
    for relative, content in tree.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


class FakeGit:
    """In-memory stand-in for the git capability.

    Refs live in memory: ``default_tree`` is the pre-conversion branch and
    ``upstream_tree`` the remote the conversion branches from. The working
    tree is a real directory so the workflow's file edits are observable.
    """

    def __init__(self, default_tree: dict[str, str], upstream_tree: dict[str, str] | None = None):
        self.default_tree = dict(default_tree)
        self.upstream_tree = dict(UPSTREAM_TREE if upstream_tree is None else upstream_tree)
        self.calls: list[tuple[str, tuple]] = []
        self.commits: list[str] = []
        self.pushed: list[tuple[str, str]] = []
        self.commit_files: dict[str, list[str]] = {}
        self._committed: dict[str, str] = {}
        self._failures: list[tuple[str, str | None, str]] = []

    def fail(self, op: str, match: str | None = None, cause: str = "simulated failure") -> None:
        """Make the next calls of an operation fail, optionally only when an argument contains match."""
        self._failures.append((op, match, cause))

    def _record(self, op: str, *args) -> None:
        self.calls.append((op, args))
        for failing_op, match, cause in self._failures:
            if failing_op == op and (match is None or any(match in str(arg) for arg in args)):
                raise GitError(op, cause)

    def branch_from(self, working_copy, remote_url, *, branch, remote_name, remote_branch):
        self._record("branch_from", remote_url, branch)
        for entry in working_copy.path.iterdir():
            if entry.is_dir():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        write_tree(working_copy.path, self.upstream_tree)
        self._committed = snapshot(working_copy.path)
        return WorkingCopy(path=working_copy.path, branch=branch)

    def checkout_path_from_ref(self, working_copy, ref, relative_path):
        self._record("checkout", ref, relative_path)
        prefix = relative_path.rstrip("/") + "/"
        files = {
            path: content
            for path, content in self.default_tree.items()
            if path == relative_path or path.startswith(prefix)
        }
        if not files:
            raise GitError("checkout", f"pathspec '{relative_path}' did not match any file(s) known to git")
        write_tree(working_copy.path, files)

    def move(self, working_copy, src_glob, dst, *, force=False):
        self._record("move", src_glob, dst)
        destination = working_copy.path / dst
        if has_glob(src_glob):
            sources = sorted(glob.glob(os.path.join(str(working_copy.path), src_glob)))
            if not sources:
                raise GitError("mv", f"pathspec '{src_glob}' did not match any files")
            destination.mkdir(parents=True, exist_ok=True)
            for source in sources:
                shutil.move(source, destination / Path(source).name)
        else:
            destination.parent.mkdir(parents=True, exist_ok=True)
            if destination.exists() and force:
                destination.unlink()
            shutil.move(str(working_copy.path / src_glob), destination)

    def remove(self, working_copy, path, *, force=False):
        self._record("remove", path)
        target = working_copy.path / path
        if target.is_dir():
            shutil.rmtree(target)
        elif target.exists():
            target.unlink()
        else:
            raise GitError("rm", f"pathspec '{path}' did not match any files")

    def is_dirty(self, working_copy):
        return snapshot(working_copy.path) != self._committed

    def commit_if_dirty(self, working_copy, message):
        self._record("commit_if_dirty", message)
        if not self.is_dirty(working_copy):
            return None
        current = snapshot(working_copy.path)
        self.commit_files[message] = sorted(
            path for path in set(current) | set(self._committed) if current.get(path) != self._committed.get(path)
        )
        self._committed = current
        self.commits.append(message)
        return f"{len(self.commits):040x}"

    def push(self, working_copy, remote, *, force=False):
        self._record("push", remote, working_copy.branch)
        self.pushed.append((remote, working_copy.branch))

    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]


def build_site(root: Path, *, web_docroot: bool = False, extra_files: dict[str, str] | None = None) -> Path:
    """Create a drops-8 style site checkout with contrib, custom code, config and libraries."""
    root.mkdir(parents=True, exist_ok=True)
    drupal = "web/" if web_docroot else ""
    pantheon_yml = "api_version: 1\nweb_docroot: true\n" if web_docroot else "api_version: 1\nphp_version: 7.4\n"
    tree = {
        "pantheon.yml": pantheon_yml,
        "composer.json": json.dumps(
            {
                "name": "pantheon-systems/drops-8",
                "require": {
                    "composer/installers": "^1.0.20",
                    "drupal/core-recommended": "^8.9",
                    "drupal/views_bulk_operations": "^3.4",
                    "acme/custom-lib": "^1.0",
                },
                "require-dev": {"phpunit/phpunit": "^7"},
                "extra": {"patches": {"drupal/views_bulk_operations": {"Fix": "fix.patch"}}},
            },
            indent=4,
        ),
        f"{drupal}core/modules/node/node.info.yml": "name: Node\ntype: module\nversion: VERSION\n",
        f"{drupal}modules/contrib/views_bulk_operations/views_bulk_operations.info.yml": (
            "name: Views Bulk Operations\ntype: module\n"
            "# Information added by Drupal.org packaging script\n"
            "version: '8.x-3.4'\nproject: 'views_bulk_operations'\n"
        ),
        f"{drupal}modules/custom/my_module/my_module.info.yml": "name: My module\ntype: module\n",
        f"{drupal}modules/custom/my_module/my_module.module": "<?php\n",
        f"{drupal}themes/custom/my_theme/my_theme.info.yml": "name: My theme\ntype: theme\n",
        f"{drupal}sites/default/settings.php": "<?php\n$settings = [];\n",
        f"{drupal}sites/default/config/system.site.yml": "name: Example\n",
        f"{drupal}sites/default/config/.htaccess": "Deny from all\n",
        f"{drupal}libraries/dropzone/dropzone.js": "// dropzone\n",
        f"{drupal}libraries/mystery/mystery.js": "// mystery\n",
    }
    tree.update(extra_files or {})
    write_tree(root, tree)
    return root


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Keep structlog output predictable between tests."""
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()


@pytest.fixture
def site_factory(tmp_path: Path) -> Callable[..., Path]:
    """Build site checkouts under tmp_path."""

    def factory(name: str = "site", **kwargs) -> Path:
        return build_site(tmp_path / name, **kwargs)

    return factory


@pytest.fixture
def site_path(site_factory) -> Path:
    """Standard (non-webroot) site checkout."""
    return site_factory()


@pytest.fixture
def git_factory() -> Callable[[Path], FakeGit]:
    """Create a FakeGit whose default branch is the current contents of a site."""

    def factory(site: Path, upstream_tree: dict[str, str] | None = None) -> FakeGit:
        return FakeGit(snapshot(site), upstream_tree)

    return factory


@pytest.fixture
def fake_git(site_path: Path, git_factory) -> FakeGit:
    return git_factory(site_path)
