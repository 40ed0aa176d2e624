"""Resolve entries into concrete source files."""

from __future__ import annotations

import glob
import os
import posixpath
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Sequence

from . import git
from .models import Entry, ResolvedSource

ORDER_FILENAME = ".fresh-order"


def matches_entry_glob(pattern: str, path: str) -> bool:
    """Return ``True`` if ``path`` matches the entry glob ``pattern``.

    Both are split on ``/`` and matched component by component, so a wildcard
    never crosses a separator and a match never recurses into subdirectories.
    A path whose final component is hidden only matches when the pattern's
    final component starts with a dot as well.
    """

    pattern_parts = pattern.split("/")
    path_parts = path.split("/")
    if len(pattern_parts) != len(path_parts):
        return False
    if not all(fnmatchcase(part, rule) for part, rule in zip(path_parts, pattern_parts)):
        return False
    return not (path_parts[-1].startswith(".") and not pattern_parts[-1].startswith("."))


def resolve_sources(entry: Entry, source_root: Path) -> list[ResolvedSource]:
    """Return the ordered source files ``entry`` refers to under ``source_root``."""

    ref = entry.options.ref
    if ref:
        tree = git.list_tree(source_root, ref)
        paths = _from_tree(entry, tree)
    elif entry.is_directory_target:
        tree = None
        paths = _walk_directory(source_root, entry.name)
    else:
        tree = None
        paths = _glob(source_root, entry.name)

    paths = sorted(path for path in paths if posixpath.basename(path) != ORDER_FILENAME)

    base = posixpath.dirname(entry.name.rstrip("/"))
    order = _read_order(source_root, base, ref=ref, tree=tree)
    if order is not None:
        paths = apply_order(paths, order, base)

    return [ResolvedSource(path=source_root.joinpath(*path.split("/")), relative_name=path) for path in paths]


def apply_order(paths: Sequence[str], order: Sequence[str], base: str) -> list[str]:
    """Sort ``paths`` by their position in ``order``; unlisted paths go last."""

    index: dict[str, int] = {}
    for position, line in enumerate(order):
        index.setdefault(line, position)

    def key(path: str) -> int:
        relative = posixpath.relpath(path, base) if base else path
        return index.get(relative, len(order))

    return sorted(paths, key=key)


def _from_tree(entry: Entry, tree: Sequence[str]) -> list[str]:
    if entry.is_directory_target:
        prefix = entry.name.rstrip("/") + "/"
        return [path for path in tree if path.startswith(prefix)]
    return [path for path in tree if matches_entry_glob(entry.name, path)]


def _walk_directory(source_root: Path, name: str) -> list[str]:
    base = source_root / name
    if not base.is_dir():
        return []

    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames.sort()
        relative_dir = Path(dirpath).relative_to(source_root).as_posix()
        for filename in sorted(filenames):
            found.append(posixpath.join(relative_dir, filename))
    return found


def _glob(source_root: Path, name: str) -> list[str]:
    matches = glob.glob(name, root_dir=source_root)
    return [Path(match).as_posix() for match in matches if not (source_root / match).is_dir()]


def _read_order(source_root: Path, base: str, *, ref: str | None, tree: Sequence[str] | None) -> list[str] | None:
    order_path = posixpath.join(base, ORDER_FILENAME) if base else ORDER_FILENAME

    if ref:
        if tree is None or order_path not in tree:
            return None
        text = git.show_object(source_root, ref, order_path).decode()
    else:
        candidate = source_root / order_path
        if not candidate.is_file():
            return None
        text = candidate.read_text()

    return [line.strip() for line in text.splitlines() if line.strip()]
