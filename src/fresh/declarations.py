"""Declaration records produced by running the rc file."""

from __future__ import annotations

import os
import shlex
import subprocess
import tempfile
from pathlib import Path
from typing import Iterable

from .config import Settings
from .errors import CommandError, ParseError
from .models import Origin, RawRecord

# Variables that may be set on a single ``fresh`` call and travel with its entry.
CAPTURED_ENV = ("FRESH_NO_BIN_CONFLICT_CHECK",)

RECORDING_PRELUDE = r"""
_fresh_record() {
  local command=$1
  shift
  local origin_file=${BASH_SOURCE[2]} origin_line=${BASH_LINENO[1]}
  if [[ $command == fresh ]]; then
    local variable
    for variable in __CAPTURED__; do
      if [[ -n "${!variable:-}" ]]; then
        printf '%q %q env %q %q\n' "$origin_file" "$origin_line" "$variable" "${!variable}" >> "$__FRESH_RECORDS__"
      fi
    done
  fi
  {
    printf '%q %q %q' "$origin_file" "$origin_line" "$command"
    if (($#)); then
      printf ' %q' "$@"
    fi
    printf '\n'
  } >> "$__FRESH_RECORDS__"
}
fresh() { _fresh_record fresh "$@"; }
fresh-options() { _fresh_record fresh-options "$@"; }
set -f
source "$1"
""".replace("__CAPTURED__", " ".join(CAPTURED_ENV))


def parse_record_line(line: str) -> RawRecord:
    """Tokenize one ``<file> <line> <command> <token>...`` record."""

    try:
        tokens = shlex.split(line)
    except ValueError as exc:
        raise ParseError(f"Malformed declaration record {line!r}: {exc}") from exc
    if len(tokens) < 3:
        raise ParseError(f"Malformed declaration record {line!r}")

    origin_file, origin_line, command, *args = tokens
    try:
        number = int(origin_line)
    except ValueError as exc:
        raise ParseError(f"Malformed line number in declaration record {line!r}") from exc
    return RawRecord(origin=Origin(origin_file, number), command=command, args=tuple(args))


def parse_record_lines(lines: Iterable[str]) -> list[RawRecord]:
    return [parse_record_line(line) for line in lines if line.strip()]


def rc_environment(settings: Settings) -> tuple[dict[str, str], Path]:
    """Return the environment and working directory the rc file is evaluated in."""

    env = dict(os.environ)
    env["FRESH_PATH"] = str(settings.root)
    env["FRESH_LOCAL"] = str(settings.local_source)
    cwd = settings.local_source if settings.local_source.is_dir() else settings.home
    return env, cwd


def read_declarations(settings: Settings) -> list[RawRecord]:
    """Run the rc file through bash and collect the records it declares.

    Filename expansion is disabled while the rc file runs, so ``fresh aliases/*``
    records the pattern itself rather than whatever it matches on disk.
    """

    rc_file = settings.rc_file
    if not rc_file.exists():
        return []

    with tempfile.TemporaryDirectory(prefix="fresh-records-") as scratch:
        records_path = Path(scratch) / "records"
        records_path.touch()
        env, cwd = rc_environment(settings)
        env["__FRESH_RECORDS__"] = str(records_path)
        try:
            proc = subprocess.run(
                ["bash", "-c", RECORDING_PRELUDE, "fresh", str(rc_file)],
                cwd=cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CommandError("bash executable not found; it is needed to read the rc file") from exc
        if proc.returncode != 0:
            raise CommandError(
                f"Reading '{rc_file}' failed with exit status {proc.returncode}",
                returncode=proc.returncode,
                stderr=proc.stderr,
            )
        return parse_record_lines(records_path.read_text().splitlines())
