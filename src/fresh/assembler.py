"""Write resolved sources into the staging build tree."""

from __future__ import annotations

import os
import shlex
import stat
import subprocess
from pathlib import Path
from typing import Mapping

from . import git
from .errors import CommandError
from .filesystem import ensure_parent
from .models import BuildTarget, Entry, ResolvedSource

BIN_CONFLICT_CHECK_ENV = "FRESH_NO_BIN_CONFLICT_CHECK"

FILTER_PRELUDE = """fresh() { :; }
fresh-options() { :; }
"""


class BuildAssembler:
    """Appends entry content to files under ``staging_dir``."""

    def __init__(
        self,
        staging_dir: Path,
        *,
        rc_file: Path | None = None,
        shell_env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.staging_dir = staging_dir
        self.rc_file = rc_file
        self.shell_env = shell_env
        self.cwd = cwd
        self._contributors: dict[str, tuple[str, int, str]] = {}
        self._bin_warned: set[str] = set()
        self._warnings: list[str] = []

    def write(self, entry: Entry, source: ResolvedSource, target: BuildTarget, *, source_root: Path) -> bool:
        """Append ``source`` to ``target``.

        Returns ``False`` when the source could not be read, which callers treat
        the same as a source that never matched.
        """

        content = self._read(entry, source, source_root)
        if content is None:
            return False
        if target.filter_command:
            content = self._apply_filter(entry, content, target.filter_command)

        self._check_bin_concatenation(entry, target)

        destination = self.staging_dir / target.build_relative_path
        ensure_parent(destination)
        prefix = self._separator(destination)
        if target.marker is not None:
            prefix += self._marker_line(entry, source, target).encode() + b"\n\n"

        with destination.open("ab") as handle:
            handle.write(prefix)
            handle.write(content)

        if target.executable:
            mode = destination.stat().st_mode
            destination.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return True

    def pull_warnings(self) -> list[str]:
        messages = list(self._warnings)
        self._warnings.clear()
        return messages

    # ------------------------------------------------------------------
    # Internal helpers

    def _read(self, entry: Entry, source: ResolvedSource, source_root: Path) -> bytes | None:
        if entry.options.ref:
            return git.show_object(source_root, entry.options.ref, source.relative_name)
        try:
            return source.path.read_bytes()
        except OSError:
            return None

    def _apply_filter(self, entry: Entry, content: bytes, command: str) -> bytes:
        script = FILTER_PRELUDE
        if self.rc_file is not None and self.rc_file.exists():
            script += f"source {shlex.quote(str(self.rc_file))} </dev/null >/dev/null\n"
        script += command + "\n"

        env = dict(os.environ if self.shell_env is None else self.shell_env)
        env.update(entry.env)
        try:
            proc = subprocess.run(
                ["bash", "-c", script],
                input=content,
                capture_output=True,
                env=env,
                cwd=self.cwd,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CommandError("bash executable not found; it is needed to run filters", origin=entry.origin) from exc
        if proc.returncode != 0:
            raise CommandError(
                f"Filter '{command}' failed with exit status {proc.returncode}",
                origin=entry.origin,
                returncode=proc.returncode,
                stderr=proc.stderr.decode(errors="replace"),
            )
        return proc.stdout

    def _check_bin_concatenation(self, entry: Entry, target: BuildTarget) -> None:
        key = target.build_relative_path
        identity = (entry.origin.file, entry.origin.line, entry.describe())
        first = self._contributors.setdefault(key, identity)
        if not target.executable or first == identity or key in self._bin_warned:
            return
        self._bin_warned.add(key)
        if entry.env.get(BIN_CONFLICT_CHECK_ENV) == "true":
            return
        self._warnings.append(
            f"Multiple sources concatenated into a single bin file ({target.link_path or key}). "
            "Concatenating executables is unusual and may not work as intended.\n"
            f"{entry.origin}: fresh {entry.describe()}\n"
            f"To silence this note, set {BIN_CONFLICT_CHECK_ENV}=true on this declaration."
        )

    @staticmethod
    def _separator(destination: Path) -> bytes:
        if not destination.exists() or destination.stat().st_size == 0:
            return b""
        with destination.open("rb") as handle:
            handle.seek(-1, os.SEEK_END)
            last = handle.read(1)
        return b"\n" if last == b"\n" else b"\n\n"

    @staticmethod
    def _marker_line(entry: Entry, source: ResolvedSource, target: BuildTarget) -> str:
        line = f"{target.marker} fresh: "
        if entry.repo:
            line += f"{entry.repo} "
        line += source.relative_name
        if entry.options.ref:
            line += f" @ {entry.options.ref}"
        if target.filter_command:
            line += f" # {target.filter_command}"
        return line
