"""Filesystem helpers for fresh."""

from __future__ import annotations

import os
import shutil
import stat
from pathlib import Path
from typing import Iterator

from .errors import BuildPermissionError, ConfigError, LinkConflictError
from .models import LinkAction
from .naming import expand_home, is_external


def ensure_parent(path: Path) -> None:
    """Ensure the parent directory exists."""

    path.parent.mkdir(parents=True, exist_ok=True)


def remove_path(path: Path) -> None:
    """Delete ``path`` whether it is a file, directory, or symlink."""

    if not path.exists() and not path.is_symlink():
        return
    if path.is_symlink() or path.is_file():
        path.unlink()
        return
    shutil.rmtree(path)


def link_destination(link: Path) -> Path:
    """Return the normalised absolute path ``link`` points at, without resolving further links."""

    target = os.readlink(link)
    return Path(os.path.normpath(os.path.join(link.parent, target)))


def symlink_points_to(link: Path, target: Path) -> bool:
    """Return ``True`` if ``link`` is a symlink whose target is ``target``."""

    if not link.is_symlink():
        return False
    return link_destination(link) == Path(os.path.normpath(target))


def inspect_link(
    link_path: str | None,
    build_relative_path: str,
    *,
    build_dir: Path,
    home: Path,
) -> LinkAction:
    """Decide what ``ensure_link`` would do without touching the filesystem."""

    if link_path is None:
        return LinkAction.SKIPPED
    if not is_external(link_path):
        if link_path.startswith(".."):
            raise ConfigError(f"Relative paths must stay inside the managed tree: '{link_path}'")
        return LinkAction.SKIPPED

    link = expand_home(link_path, home)
    desired = build_dir / build_relative_path

    if link.is_symlink():
        if symlink_points_to(link, desired):
            return LinkAction.UNCHANGED
        current = link_destination(link)
        if not current.is_relative_to(Path(os.path.normpath(build_dir))):
            raise LinkConflictError(f"Link '{link}' already exists and points to '{current}', not into '{build_dir}'")
        _check_link_parent(link)
        return LinkAction.REPAIRED

    if link.exists():
        raise LinkConflictError(f"Cannot link '{link}': a file already exists there and is not managed by fresh")

    _check_link_parent(link)
    return LinkAction.CREATED


def _check_link_parent(link: Path) -> None:
    """Raise unless the directories leading to ``link`` exist or can be created."""

    ancestor = link.parent
    while not os.path.lexists(ancestor) and ancestor != ancestor.parent:
        ancestor = ancestor.parent
    if not ancestor.is_dir():
        raise BuildPermissionError(f"Unable to create link '{link}': '{ancestor}' is not a directory")
    if not os.access(ancestor, os.W_OK | os.X_OK):
        raise BuildPermissionError(f"Unable to create link '{link}': '{ancestor}' is not writable")


def ensure_link(
    link_path: str | None,
    build_relative_path: str,
    *,
    build_dir: Path,
    home: Path,
) -> LinkAction:
    """Ensure ``link_path`` is a symlink to ``build_relative_path`` inside ``build_dir``.

    Links already pointing into ``build_dir`` are repointed; anything else at
    ``link_path`` is left alone and reported as a conflict.
    """

    if link_path is None:
        return LinkAction.SKIPPED
    action = inspect_link(link_path, build_relative_path, build_dir=build_dir, home=home)
    if action in (LinkAction.SKIPPED, LinkAction.UNCHANGED):
        return action

    link = expand_home(link_path, home)
    desired = build_dir / build_relative_path

    try:
        if action is LinkAction.REPAIRED:
            temporary = link.parent / f".{link.name}.fresh-tmp-{os.getpid()}"
            remove_path(temporary)
            temporary.symlink_to(desired)
            os.replace(temporary, link)
        else:
            ensure_parent(link)
            link.symlink_to(desired)
    except OSError as exc:
        raise BuildPermissionError(f"Unable to create link '{link}': {exc.strerror or exc}") from exc

    return action


def make_read_only(root: Path) -> None:
    """Remove the write bits of every regular file below ``root``."""

    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            path = Path(dirpath) / name
            mode = path.lstat().st_mode
            if stat.S_ISREG(mode):
                path.chmod(stat.S_IMODE(mode) & ~(stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH))


def iter_build_files(root: Path) -> Iterator[str]:
    """Yield the build-relative paths of every file below ``root``, sorted."""

    files: list[str] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            files.append((Path(dirpath) / name).relative_to(root).as_posix())
    yield from sorted(files)


def dangling_links(home: Path, build_dir: Path, *, max_depth: int = 3, skip: tuple[Path, ...] = ()) -> list[Path]:
    """Return broken symlinks below ``home`` that point into ``build_dir``."""

    found: list[Path] = []
    build_prefix = Path(os.path.normpath(build_dir))
    skipped = {Path(os.path.normpath(path)) for path in skip}

    def visit(directory: Path, depth: int) -> None:
        try:
            children = sorted(directory.iterdir())
        except OSError:
            return
        for child in children:
            if child.is_symlink():
                if link_destination(child).is_relative_to(build_prefix) and not child.exists():
                    found.append(child)
            elif child.is_dir() and depth < max_depth and child not in skipped:
                visit(child, depth + 1)

    visit(home, 1)
    return found
