"""High level orchestration for fresh operations."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from . import git
from .assembler import BuildAssembler
from .config import Settings
from .declarations import rc_environment, read_declarations
from .errors import BuildPermissionError, ConfigError, FreshError, MissingSourceError
from .filesystem import (
    dangling_links,
    ensure_link,
    inspect_link,
    iter_build_files,
    make_read_only,
    remove_path,
)
from .models import CleanResult, Entry, InstallResult, InstallState, LinkResult, ShowItem
from .naming import SHELL_FILE, directory_link, expand_home, target_for
from .parser import parse_entries
from .resolver import resolve_sources

PATH_EXPORT_LINE = (
    "__FRESH_BIN_PATH__=$HOME/bin; "
    '[[ ! $PATH =~ (^|:)$__FRESH_BIN_PATH__(:|$) ]] && export PATH="$__FRESH_BIN_PATH__:$PATH"; '
    "unset __FRESH_BIN_PATH__"
)

OWN_BIN = "bin/fresh"
OWN_BIN_DECLARATION = "fresh freshshell/fresh bin/fresh --bin"


class FreshManager:
    """Builds the dotfile tree described by the rc file and publishes it."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.state = InstallState.EMPTY
        self._warnings: list[str] = []
        self._checked_repos: set[str] = set()

    def load_entries(self) -> list[Entry]:
        return parse_entries(read_declarations(self.settings))

    def install(self, entries: Sequence[Entry] | None = None) -> InstallResult:
        """Build every entry into a staging tree and publish it atomically."""

        if entries is None:
            entries = self.load_entries()
        self._warnings.clear()
        self._checked_repos.clear()

        try:
            self._stage()
            shell_env, cwd = rc_environment(self.settings)
            assembler = BuildAssembler(
                self.settings.staging_dir, rc_file=self.settings.rc_file, shell_env=shell_env, cwd=cwd
            )
            planned: dict[str, str] = {}
            for entry in entries:
                try:
                    for link_path, build_path in self._install_entry(entry, assembler):
                        self._plan_link(planned, link_path, build_path, entry)
                except FreshError as exc:
                    if exc.origin is None:
                        exc.origin = entry.origin
                    raise
            self._warnings.extend(assembler.pull_warnings())
            self._check_own_bin()

            self.state = InstallState.FINALIZING
            make_read_only(self.settings.staging_dir)
            self._publish()
            links = tuple(self._apply_link(link_path, build_path) for link_path, build_path in planned.items())
        except Exception:
            self.state = InstallState.FAILED
            raise

        self.state = InstallState.PUBLISHED
        return InstallResult(
            build_dir=self.settings.build_dir,
            files=tuple(iter_build_files(self.settings.build_dir)),
            links=links,
        )

    def show(self, entries: Sequence[Entry] | None = None) -> list[ShowItem]:
        """Report the build files and links each entry contributes to."""

        if entries is None:
            entries = self.load_entries()

        items: list[ShowItem] = []
        home = self.settings.home
        for entry in entries:
            source_root = self._source_root(entry)
            build_paths: list[str] = []
            link_paths: list[str] = []
            for source in resolve_sources(entry, source_root):
                target = target_for(entry, source, home=home)
                if target.build_relative_path not in build_paths:
                    build_paths.append(target.build_relative_path)
                if target.link_path and target.link_path not in link_paths:
                    link_paths.append(target.link_path)
            extra = directory_link(entry, home=home)
            if extra is not None and build_paths:
                link_paths.append(extra[0])
            items.append(ShowItem(entry=entry, build_paths=tuple(build_paths), link_paths=tuple(link_paths)))
        return items

    def clean(self, entries: Sequence[Entry] | None = None) -> CleanResult:
        """Remove dead links into the build tree and repositories no entry uses."""

        if entries is None:
            entries = self.load_entries()

        removed_links = dangling_links(self.settings.home, self.settings.build_dir, skip=(self.settings.root,))
        for link in removed_links:
            link.unlink()

        referenced = {git.repo_dir(self.settings.source_dir, entry.repo) for entry in entries if entry.repo}
        removed_repos: list[Path] = []
        source_dir = self.settings.source_dir
        if source_dir.is_dir():
            for owner in sorted(source_dir.iterdir()):
                if not owner.is_dir():
                    continue
                for repository in sorted(owner.iterdir()):
                    if repository not in referenced:
                        remove_path(repository)
                        removed_repos.append(repository)
                if not any(owner.iterdir()):
                    owner.rmdir()

        return CleanResult(removed_links=tuple(removed_links), removed_repos=tuple(removed_repos))

    def pull_warnings(self) -> list[str]:
        messages = list(self._warnings)
        self._warnings.clear()
        return messages

    # ------------------------------------------------------------------
    # Internal helpers

    def _stage(self) -> None:
        self.state = InstallState.STAGING
        staging = self.settings.staging_dir
        try:
            remove_path(staging)
            staging.mkdir(parents=True)
        except OSError as exc:
            raise BuildPermissionError(f"Unable to prepare staging directory '{staging}': {exc}") from exc

        lines = []
        if not self.settings.no_path_export:
            lines.append(PATH_EXPORT_LINE)
        lines.append(f'export FRESH_PATH="{self.settings.root}"')
        (staging / SHELL_FILE).write_text("".join(f"{line}\n" for line in lines))

    def _install_entry(self, entry: Entry, assembler: BuildAssembler) -> list[tuple[str, str]]:
        home = self.settings.home
        source_root = self._source_root(entry)

        links: list[tuple[str, str]] = []
        written = 0
        for source in resolve_sources(entry, source_root):
            target = target_for(entry, source, home=home)
            if not assembler.write(entry, source, target, source_root=source_root):
                continue
            written += 1
            if target.link_path is not None:
                links.append((target.link_path, target.build_relative_path))

        if written == 0:
            if entry.options.ignore_missing:
                return []
            raise MissingSourceError(f'Could not find "{entry.name}" source file.', origin=entry.origin)

        extra = directory_link(entry, home=home)
        if extra is not None:
            links.append(extra)

        for link_path, build_path in links:
            inspect_link(link_path, build_path, build_dir=self.settings.build_dir, home=home)
        return links

    def _source_root(self, entry: Entry) -> Path:
        if entry.repo is None:
            return self.settings.local_source

        repository = git.repo_dir(self.settings.source_dir, entry.repo)
        if not repository.exists():
            git.clone(git.repo_url(entry.repo), repository)
        self._check_local_duplicate(entry, entry.repo)
        return repository

    def _check_local_duplicate(self, entry: Entry, repo: str) -> None:
        if self.settings.no_local_check or repo in self._checked_repos:
            return
        self._checked_repos.add(repo)

        local_url = git.remote_url(self.settings.local_source)
        if local_url is None or not git.same_repository(local_url, repo):
            return
        self._warnings.append(
            "You seem to be sourcing your local files remotely.\n"
            f"{entry.origin}: fresh {entry.describe()}\n"
            f"You can remove \"{repo}\" when sourcing from your local dotfiles repo ({self.settings.local_source}).\n"
            "To disable this note, set FRESH_NO_LOCAL_CHECK=true."
        )

    @staticmethod
    def _plan_link(planned: dict[str, str], link_path: str, build_path: str, entry: Entry) -> None:
        existing = planned.setdefault(link_path, build_path)
        if existing != build_path:
            raise ConfigError(
                f"Link '{link_path}' would point to both '{existing}' and '{build_path}'",
                origin=entry.origin,
            )

    def _check_own_bin(self) -> None:
        if self.settings.no_bin_check or (self.settings.staging_dir / OWN_BIN).exists():
            return
        raise ConfigError(
            "It looks like you don't have fresh's own bin in your build.\n\n"
            f"You should add the following to your {self.settings.rc_file.name}:\n\n"
            f"  {OWN_BIN_DECLARATION}\n\n"
            "To disable this check, set FRESH_NO_BIN_CHECK=true."
        )

    def _publish(self) -> None:
        build = self.settings.build_dir
        backup = self.settings.backup_dir
        try:
            remove_path(backup)
            if build.exists():
                build.rename(backup)
            self.settings.staging_dir.rename(build)
            remove_path(backup)
        except OSError as exc:
            raise BuildPermissionError(f"Unable to publish build into '{build}': {exc}") from exc

    def _apply_link(self, link_path: str, build_path: str) -> LinkResult:
        home = self.settings.home
        action = ensure_link(link_path, build_path, build_dir=self.settings.build_dir, home=home)
        return LinkResult(
            link_path=expand_home(link_path, home),
            target=self.settings.build_dir / build_path,
            action=action,
        )
