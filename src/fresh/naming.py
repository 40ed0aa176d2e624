"""Derive build paths and link paths for resolved sources."""

from __future__ import annotations

import posixpath
import re
from pathlib import Path

from .errors import ConfigError
from .models import BuildTarget, Entry, ResolvedSource

SHELL_FILE = "shell.sh"
SHELL_MARKER = "#"

_FLATTEN = re.compile(r"[/ ()]+")


def is_external(value: str) -> bool:
    """Return ``True`` for absolute or home-rooted paths."""

    return value.startswith("/") or value == "~" or value.startswith("~/")


def expand_home(value: str, home: Path) -> Path:
    if value == "~":
        return home
    if value.startswith("~/"):
        return home / value[2:]
    return Path(value)


def check_relative(value: str) -> None:
    """Reject relative paths that would escape the build tree."""

    if is_external(value):
        return
    if ".." in Path(value).parts:
        raise ConfigError(f"Relative paths must stay inside the managed tree: '{value}'")


def build_name(value: str, home: Path) -> str:
    """Return the build-tree name for a ``--file`` value."""

    external = is_external(value)
    text = value
    if text.startswith("~/"):
        text = text[2:]
    elif text.startswith(str(home).rstrip("/") + "/"):
        text = text[len(str(home).rstrip("/")) + 1 :]
    if text.startswith("."):
        text = text[1:]

    if external:
        text = _FLATTEN.sub("-", text).strip("-")
    else:
        text = posixpath.normpath(text) if text else text

    if not text or text == ".":
        raise ConfigError(f"Cannot derive a build file name from '{value}'")
    return text


def target_for(entry: Entry, source: ResolvedSource, *, home: Path) -> BuildTarget:
    """Return where ``source`` lands in the build tree and what links to it."""

    options = entry.options
    basename = posixpath.basename(source.relative_name)

    if options.bin is not None:
        link = options.bin or f"~/bin/{basename}"
        if not is_external(link):
            raise ConfigError(f"--bin file paths must be absolute or start with ~/: '{link}'")
        return BuildTarget(
            build_relative_path=f"bin/{posixpath.basename(link.rstrip('/'))}",
            link_path=link,
            marker=options.marker,
            filter_command=options.filter,
            executable=True,
        )

    if options.file is not None:
        value = options.file or f"~/.{basename[1:] if basename.startswith('.') else basename}"
        check_relative(value)
        if entry.is_directory_target:
            directory = build_name(value.rstrip("/"), home)
            sub_path = posixpath.relpath(source.relative_name, entry.name.rstrip("/"))
            return BuildTarget(
                build_relative_path=f"{directory}/{sub_path}",
                marker=options.marker,
                filter_command=options.filter,
            )
        return BuildTarget(
            build_relative_path=build_name(value, home),
            link_path=value if is_external(value) else None,
            marker=options.marker,
            filter_command=options.filter,
        )

    return BuildTarget(
        build_relative_path=SHELL_FILE,
        marker=SHELL_MARKER if options.marker is None else options.marker,
        filter_command=options.filter,
    )


def directory_link(entry: Entry, *, home: Path) -> tuple[str, str] | None:
    """Return ``(link_path, build_relative_path)`` for external directory targets."""

    value = entry.options.file
    if not entry.is_directory_target or value is None or not is_external(value):
        return None
    directory = value.rstrip("/") or value
    return directory, build_name(directory, home)
