"""Tests for the git command-line capability against real repositories."""

import shutil
from pathlib import Path

import pytest

from drupal_conversion.core.exceptions import GitError
from drupal_conversion.core.git import Git, SubprocessGit, has_glob
from drupal_conversion.core.subprocess_manager import run_command
from drupal_conversion.models import WorkingCopy

from .conftest import FakeGit, write_tree

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(cwd: Path, *args: str) -> str:
    return run_command(["git", *args], cwd=cwd).stdout.strip()


def init_repo(path: Path, tree: dict[str, str], *, bare: bool = False) -> Path:
    path.mkdir(parents=True)
    if bare:
        git(path, "init", "-q", "--bare")
        return path
    git(path, "init", "-q")
    git(path, "symbolic-ref", "HEAD", "refs/heads/master")
    write_tree(path, tree)
    git(path, "add", "-A")
    git(path, "commit", "-q", "-m", "Initial commit")
    return path


@pytest.fixture(autouse=True)
def isolated_git_env(monkeypatch, tmp_path):
    """Keep the user's global git configuration out of the tests."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME"):
        monkeypatch.setenv(var, "Conversion Tests")
    for var in ("GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL"):
        monkeypatch.setenv(var, "tests@example.com")


@pytest.fixture
def upstream(tmp_path) -> Path:
    return init_repo(tmp_path / "upstream", {"composer.json": "{}\n", "web/index.php": "<?php\n"})


@pytest.fixture
def site(tmp_path) -> Path:
    return init_repo(
        tmp_path / "site",
        {
            "index.php": "<?php\n",
            "sites/default/settings.php": "<?php\n",
            "sites/default/config/system.site.yml": "name: Example\n",
            "sites/default/config/.htaccess": "Deny from all\n",
        },
    )


@pytest.fixture
def working_copy(site) -> WorkingCopy:
    return WorkingCopy(path=site, branch="master")


@pytest.fixture
def subprocess_git() -> SubprocessGit:
    return SubprocessGit()


def branch(subprocess_git: SubprocessGit, working_copy: WorkingCopy, upstream: Path) -> WorkingCopy:
    return subprocess_git.branch_from(
        working_copy, str(upstream), branch="conversion", remote_name="target-upstream", remote_branch="master"
    )


class TestSubprocessGit:
    """SubprocessGit against temporary repositories."""

    def test_implements_git_capability(self, subprocess_git):
        assert isinstance(subprocess_git, Git)
        assert isinstance(FakeGit({}), Git)

    def test_commit_if_dirty(self, subprocess_git, working_copy, site):
        assert subprocess_git.commit_if_dirty(working_copy, "Nothing") is None

        (site / "new.txt").write_text("new\n")
        assert subprocess_git.is_dirty(working_copy)

        commit = subprocess_git.commit_if_dirty(working_copy, "Add new.txt")

        assert commit == git(site, "rev-parse", "HEAD")
        assert git(site, "log", "-1", "--format=%s") == "Add new.txt"
        assert subprocess_git.commit_if_dirty(working_copy, "Again") is None
        assert not subprocess_git.is_dirty(working_copy)

    def test_branch_from_remote(self, subprocess_git, working_copy, site, upstream):
        branched = branch(subprocess_git, working_copy, upstream)

        assert branched == WorkingCopy(path=site, branch="conversion")
        assert git(site, "rev-parse", "--abbrev-ref", "HEAD") == "conversion"
        assert (site / "web" / "index.php").is_file()
        assert not (site / "index.php").exists()
        assert git(site, "rev-parse", "HEAD") == git(upstream, "rev-parse", "HEAD")

    def test_branch_from_tracks_remote_branch(self, subprocess_git, working_copy, site, upstream):
        branch(subprocess_git, working_copy, upstream)

        assert git(site, "rev-parse", "--abbrev-ref", "conversion@{upstream}") == "target-upstream/master"

    def test_branch_from_is_repeatable(self, subprocess_git, working_copy, site, upstream):
        first = branch(subprocess_git, working_copy, upstream)
        second = branch(subprocess_git, first, upstream)

        assert second == first
        assert git(site, "remote").split() == ["target-upstream"]

    def test_checkout_path_from_ref(self, subprocess_git, working_copy, site, upstream):
        branched = branch(subprocess_git, working_copy, upstream)

        subprocess_git.checkout_path_from_ref(branched, "master", "sites/default/config")

        assert (site / "sites" / "default" / "config" / "system.site.yml").is_file()
        assert not (site / "sites" / "default" / "settings.php").exists()

    def test_checkout_missing_path_raises(self, subprocess_git, working_copy):
        with pytest.raises(GitError) as exc_info:
            subprocess_git.checkout_path_from_ref(working_copy, "master", "does/not/exist")

        assert exc_info.value.op == "checkout"
        assert "git checkout failed" in str(exc_info.value)

    def test_move_glob_into_new_directory(self, subprocess_git, working_copy, site):
        subprocess_git.move(working_copy, "sites/default/config/*", "config")

        assert (site / "config" / "system.site.yml").is_file()
        assert (site / "sites" / "default" / "config" / ".htaccess").is_file()
        assert not (site / "sites" / "default" / "config" / "system.site.yml").exists()

    def test_move_glob_without_matches_raises(self, subprocess_git, working_copy):
        with pytest.raises(GitError, match="did not match"):
            subprocess_git.move(working_copy, "nothing/here/*", "config")

    def test_move_file_with_force(self, subprocess_git, working_copy, site):
        (site / "web" / "sites" / "default").mkdir(parents=True)
        (site / "web" / "sites" / "default" / "settings.php").write_text("<?php // upstream\n")
        subprocess_git.commit_if_dirty(working_copy, "Upstream settings")

        subprocess_git.move(working_copy, "sites/default/settings.php", "web/sites/default/settings.php", force=True)

        assert (site / "web" / "sites" / "default" / "settings.php").read_text() == "<?php\n"

    def test_remove(self, subprocess_git, working_copy, site):
        subprocess_git.remove(working_copy, "sites/default/config/.htaccess")

        assert not (site / "sites" / "default" / "config" / ".htaccess").exists()
        assert subprocess_git.commit_if_dirty(working_copy, "Remove .htaccess") is not None

    def test_push(self, subprocess_git, working_copy, site, upstream, tmp_path):
        remote = init_repo(tmp_path / "remote.git", {}, bare=True)
        git(site, "remote", "add", "origin", str(remote))
        branched = branch(subprocess_git, working_copy, upstream)

        subprocess_git.push(branched, "origin", force=True)

        assert git(remote, "rev-parse", "conversion") == git(site, "rev-parse", "HEAD")

    def test_missing_executable_raises_git_error(self, working_copy):
        broken = SubprocessGit(executable="definitely-not-git-xyz")

        with pytest.raises(GitError) as exc_info:
            broken.is_dirty(working_copy)

        assert exc_info.value.op == "status"


@pytest.mark.parametrize(
    "pattern,expected",
    [("config/*", True), ("file?.txt", True), ("[ab].txt", True), ("sites/default/settings.php", False)],
)
def test_has_glob(pattern, expected):
    assert has_glob(pattern) is expected
