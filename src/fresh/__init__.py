"""Core package for the fresh project."""

from .cli import app, run
from .config import Settings, load_settings
from .errors import (
    BuildPermissionError,
    CommandError,
    ConfigError,
    FreshError,
    LinkConflictError,
    MissingSourceError,
    ParseError,
)
from .manager import FreshManager
from .models import (
    BuildTarget,
    Entry,
    EntryOptions,
    InstallResult,
    InstallState,
    LinkAction,
    LinkResult,
    Origin,
    RawRecord,
    ResolvedSource,
)
from .parser import parse_entries
from .resolver import matches_entry_glob, resolve_sources

__all__ = [
    "Settings",
    "load_settings",
    "FreshManager",
    "FreshError",
    "ParseError",
    "MissingSourceError",
    "LinkConflictError",
    "ConfigError",
    "BuildPermissionError",
    "CommandError",
    "BuildTarget",
    "Entry",
    "EntryOptions",
    "InstallResult",
    "InstallState",
    "LinkAction",
    "LinkResult",
    "Origin",
    "RawRecord",
    "ResolvedSource",
    "parse_entries",
    "matches_entry_glob",
    "resolve_sources",
    "app",
    "run",
]
