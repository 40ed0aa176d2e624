"""Shared models and enums for fresh."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True, slots=True)
class Origin:
    """Location of a declaration inside the rc file (or a file it sources)."""

    file: str
    line: int

    def source_text(self) -> str | None:
        """Return the literal declaration line, if it can still be read."""

        try:
            lines = Path(self.file).read_text().splitlines()
        except (OSError, UnicodeDecodeError):
            return None
        if 1 <= self.line <= len(lines):
            return lines[self.line - 1].strip()
        return None

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass(frozen=True, slots=True)
class RawRecord:
    """One tokenized declaration record."""

    origin: Origin
    command: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class EntryOptions:
    """Placement options of an entry after defaults have been merged in.

    ``file`` and ``bin`` hold ``""`` when the option was given without a value.
    """

    marker: str | None = None
    file: str | None = None
    bin: str | None = None
    ref: str | None = None
    filter: str | None = None
    ignore_missing: bool = False


@dataclass(frozen=True, slots=True)
class Entry:
    """One declared source binding."""

    origin: Origin
    name: str
    options: EntryOptions = field(default_factory=EntryOptions)
    repo: str | None = None
    env: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_directory_target(self) -> bool:
        return self.options.file is not None and self.options.file.endswith("/")

    def describe(self) -> str:
        return f"{self.repo} {self.name}" if self.repo else self.name


@dataclass(frozen=True, slots=True)
class ResolvedSource:
    """A concrete file found for an entry."""

    path: Path
    relative_name: str


@dataclass(frozen=True, slots=True)
class BuildTarget:
    """Destination of a resolved source inside the build tree."""

    build_relative_path: str
    link_path: str | None = None
    marker: str | None = None
    filter_command: str | None = None
    executable: bool = False


class LinkAction(str, Enum):
    """Outcome of reconciling a link."""

    CREATED = "created"
    REPAIRED = "repaired"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class LinkResult:
    """Result emitted when reconciling a link into the build tree."""

    link_path: Path
    target: Path
    action: LinkAction


class InstallState(str, Enum):
    """Phases of an install transaction."""

    EMPTY = "empty"
    STAGING = "staging"
    FINALIZING = "finalizing"
    PUBLISHED = "published"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class InstallResult:
    """Summary of a published build."""

    build_dir: Path
    files: tuple[str, ...]
    links: tuple[LinkResult, ...]


@dataclass(frozen=True, slots=True)
class ShowItem:
    """Build files and links an entry contributes to."""

    entry: Entry
    build_paths: tuple[str, ...]
    link_paths: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class CleanResult:
    """Paths removed by ``fresh clean``."""

    removed_links: tuple[Path, ...]
    removed_repos: tuple[Path, ...]
