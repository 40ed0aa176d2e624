from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from fresh import git
from fresh.errors import CommandError
from fresh.models import Entry, EntryOptions, Origin
from fresh.resolver import resolve_sources

needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is required")


def _git(repository: Path, *args: str) -> None:
    subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=repository,
        check=True,
        capture_output=True,
    )


@pytest.mark.parametrize(
    ("repo", "url"),
    [
        ("twe4ked/dotfiles", "https://github.com/twe4ked/dotfiles"),
        ("https://gitlab.com/me/dots.git", "https://gitlab.com/me/dots.git"),
        ("git@github.com:me/dots.git", "git@github.com:me/dots.git"),
    ],
)
def test_repo_url(repo: str, url: str) -> None:
    assert git.repo_url(repo) == url


def test_repo_dir_uses_owner_and_name(tmp_path: Path) -> None:
    assert git.repo_dir(tmp_path, "twe4ked/dotfiles") == tmp_path / "twe4ked" / "dotfiles"
    assert git.repo_dir(tmp_path, "https://gitlab.com/group/me/dots.git") == tmp_path / "me" / "dots"
    assert git.repo_dir(tmp_path, "git@github.com:me/dots.git") == tmp_path / "me" / "dots"


def test_same_repository() -> None:
    assert git.same_repository("git@github.com:me/dots.git", "me/dots")
    assert git.same_repository("https://github.com/me/dots", "me/dots")
    assert not git.same_repository("https://gitlab.com/me/dots", "me/dots")


@needs_git
def test_list_tree_and_show_object(tmp_path: Path) -> None:
    repository = tmp_path / "repo"
    (repository / "aliases").mkdir(parents=True)
    (repository / "aliases" / "git.sh").write_text("old\n")
    (repository / "vimrc").write_text("set nu\n")
    _git(tmp_path, "init", "-q", str(repository))
    _git(repository, "add", ".")
    _git(repository, "commit", "-q", "-m", "initial")
    _git(repository, "tag", "v1")
    (repository / "aliases" / "git.sh").write_text("new\n")
    _git(repository, "commit", "-q", "-am", "update")

    assert git.list_tree(repository, "v1") == ["aliases/git.sh", "vimrc"]
    assert git.show_object(repository, "v1", "aliases/git.sh") == b"old\n"
    assert git.remote_url(repository) is None

    _git(repository, "remote", "add", "origin", "https://github.com/me/dots")
    assert git.remote_url(repository) == "https://github.com/me/dots"

    entry = Entry(origin=Origin("freshrc", 1), name="aliases/*", options=EntryOptions(ref="v1"))
    assert [source.relative_name for source in resolve_sources(entry, repository)] == ["aliases/git.sh"]

    with pytest.raises(CommandError):
        git.show_object(repository, "v1", "missing")
