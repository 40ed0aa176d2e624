"""Thin wrapper around the ``git`` executable."""

from __future__ import annotations

import subprocess
from pathlib import Path
from urllib.parse import urlparse

from .errors import CommandError

GITHUB_URL = "https://github.com/{repo}"


def repo_url(repo: str) -> str:
    """Return the clone URL for ``repo`` (``owner/name`` means GitHub)."""

    if "://" in repo or repo.startswith("git@") or ":" in repo:
        return repo
    return GITHUB_URL.format(repo=repo)


def _host_and_path(url: str) -> tuple[str, str]:
    if url.startswith("git@"):  # git@github.com:owner/repo.git
        host, _, path = url[4:].partition(":")
    elif "://" in url:
        parsed = urlparse(url)
        host = parsed.hostname or ""
        path = parsed.path
    else:
        host, path = "", url
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    return host.lower(), path


def repo_dir(source_dir: Path, repo: str) -> Path:
    """Return ``<source_dir>/<owner>/<name>`` for ``repo``."""

    _, path = _host_and_path(repo_url(repo))
    parts = [part for part in path.split("/") if part]
    return source_dir.joinpath(*parts[-2:])


def same_repository(left: str, right: str) -> bool:
    return _host_and_path(repo_url(left)) == _host_and_path(repo_url(right))


def _run_git(args: list[str], *, cwd: Path | None = None) -> bytes:
    try:
        proc = subprocess.run(["git", *args], cwd=cwd, capture_output=True, check=False)
    except FileNotFoundError as exc:
        raise CommandError("git executable not found") from exc
    if proc.returncode != 0:
        raise CommandError(
            f"git {' '.join(args)} failed with exit status {proc.returncode}",
            returncode=proc.returncode,
            stderr=proc.stderr.decode(errors="replace"),
        )
    return proc.stdout


def clone(url: str, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    _run_git(["clone", url, str(destination)])


def list_tree(repository: Path, ref: str) -> list[str]:
    """Return every file path recorded under ``ref``."""

    output = _run_git(["ls-tree", "-r", "-z", "--name-only", ref], cwd=repository)
    return [path for path in output.decode().split("\0") if path]


def show_object(repository: Path, ref: str, path: str) -> bytes:
    return _run_git(["show", f"{ref}:{path}"], cwd=repository)


def remote_url(repository: Path) -> str | None:
    """Return the ``origin`` URL of ``repository`` or ``None`` when it has none."""

    if not (repository / ".git").exists():
        return None
    try:
        output = _run_git(["config", "--get", "remote.origin.url"], cwd=repository)
    except CommandError:
        return None
    return output.decode().strip() or None
