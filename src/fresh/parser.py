"""Turn declaration records into entries."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .errors import ConfigError, ParseError
from .models import Entry, EntryOptions, Origin, RawRecord

DEFAULT_MARKER = "#"

ENTRY_COMMAND = "fresh"
DEFAULTS_COMMANDS = ("fresh-options", "default-options")
ENV_COMMAND = "env"

# option name -> EntryOptions field
OPTION_FIELDS = {
    "marker": "marker",
    "file": "file",
    "bin": "bin",
    "ref": "ref",
    "filter": "filter",
    "ignore-missing": "ignore_missing",
}

_PLACEMENT_FIELDS = ("file", "bin")


def parse_entries(records: Iterable[RawRecord]) -> list[Entry]:
    """Return one ``Entry`` per ``fresh`` record.

    Default options and pending env are snapshots threaded through the loop:
    ``fresh-options`` replaces the defaults for later entries, ``env`` records
    accumulate until the next entry consumes them.
    """

    entries: list[Entry] = []
    current_defaults: Mapping[str, Any] = MappingProxyType({})
    pending_env: dict[str, str] = {}

    for record in records:
        if record.command == ENTRY_COMMAND:
            entries.append(_parse_entry(record, current_defaults, MappingProxyType(dict(pending_env))))
            pending_env = {}
        elif record.command in DEFAULTS_COMMANDS:
            positional, options = _split_arguments(record)
            if positional:
                raise ParseError(
                    f"{record.command} does not take positional arguments (got '{positional[0]}')",
                    origin=record.origin,
                )
            current_defaults = MappingProxyType(options)
        elif record.command == ENV_COMMAND:
            if len(record.args) != 2:
                raise ParseError(
                    f"env expects exactly two arguments, got {len(record.args)}",
                    origin=record.origin,
                )
            key, value = record.args
            pending_env = {**pending_env, key: value}
        else:
            raise ParseError(f"Unknown command '{record.command}'", origin=record.origin)

    return entries


def _parse_entry(record: RawRecord, defaults: Mapping[str, Any], env: Mapping[str, str]) -> Entry:
    positional, options = _split_arguments(record)

    if not positional:
        raise ParseError("Filename is required", origin=record.origin)
    if len(positional) > 2:
        raise ParseError(f"Unexpected argument '{positional[2]}'", origin=record.origin)

    repo = positional[0] if len(positional) == 2 else None
    name = positional[-1]
    if not name:
        raise ParseError("Filename must not be empty", origin=record.origin)
    if repo is not None and not repo:
        raise ParseError("Repository must not be empty", origin=record.origin)

    inherited = dict(defaults)
    if any(key in options for key in _PLACEMENT_FIELDS):
        for key in _PLACEMENT_FIELDS:
            inherited.pop(key, None)
    merged = {**inherited, **options}

    if merged.get("file") is not None and merged.get("bin") is not None:
        raise ConfigError("--file and --bin cannot be used together", origin=record.origin)

    return Entry(origin=record.origin, name=name, options=EntryOptions(**merged), repo=repo, env=env)


def _split_arguments(record: RawRecord) -> tuple[list[str], dict[str, Any]]:
    positional: list[str] = []
    options: dict[str, Any] = {}

    for token in record.args:
        if not token.startswith("--"):
            positional.append(token)
            continue

        key, has_value, value = token[2:].partition("=")
        field_name = OPTION_FIELDS.get(key)
        if field_name is None:
            raise ParseError(f"Unknown option: {token}", origin=record.origin)
        options[field_name] = _option_value(key, value if has_value else None, record.origin)

    return positional, options


def _option_value(key: str, value: str | None, origin: Origin) -> Any:
    if key == "ignore-missing":
        if value is not None:
            raise ParseError("--ignore-missing does not take a value", origin=origin)
        return True
    if key == "marker":
        return DEFAULT_MARKER if value is None else value
    if key in ("ref", "filter"):
        if not value:
            raise ParseError(f"--{key} requires a value", origin=origin)
        return value
    return value or ""
