from __future__ import annotations

from pathlib import Path

import pytest

from fresh.models import Entry, EntryOptions, Origin
from fresh.resolver import apply_order, matches_entry_glob, resolve_sources

ORIGIN = Origin("freshrc", 1)


def _touch(root: Path, *names: str) -> None:
    for name in names:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"{name}\n")


def _names(entry: Entry, root: Path) -> list[str]:
    return [source.relative_name for source in resolve_sources(entry, root)]


@pytest.mark.parametrize(
    ("pattern", "path", "expected"),
    [
        ("aliases/*", "aliases/git.sh", True),
        ("aliases/*", "aliases/nested/git.sh", False),
        ("aliases/*", "aliases/.hidden", False),
        ("aliases/.*", "aliases/.hidden", True),
        ("aliases/*.sh", "aliases/git.zsh", False),
        ("*/git.sh", "aliases/git.sh", True),
        ("*", "aliases/git.sh", False),
        ("vimrc", "vimrc", True),
        ("vim?c", "vimrc", True),
        ("config/[ab].sh", "config/b.sh", True),
    ],
)
def test_matches_entry_glob(pattern: str, path: str, expected: bool) -> None:
    assert matches_entry_glob(pattern, path) is expected


def test_glob_mode_sorts_and_skips_hidden_and_directories(tmp_path: Path) -> None:
    _touch(tmp_path, "aliases/git.sh", "aliases/bash.sh", "aliases/.secret", "aliases/sub/deep.sh")
    entry = Entry(origin=ORIGIN, name="aliases/*")

    assert _names(entry, tmp_path) == ["aliases/bash.sh", "aliases/git.sh"]


def test_glob_mode_hidden_pattern_matches_hidden_files(tmp_path: Path) -> None:
    _touch(tmp_path, "config/.inputrc", "config/visible")
    entry = Entry(origin=ORIGIN, name="config/.*")

    assert _names(entry, tmp_path) == ["config/.inputrc"]


def test_resolved_paths_are_absolute(tmp_path: Path) -> None:
    _touch(tmp_path, "vimrc")
    (source,) = resolve_sources(Entry(origin=ORIGIN, name="vimrc"), tmp_path)

    assert source.path == tmp_path / "vimrc"
    assert source.path.is_absolute()


def test_missing_name_resolves_to_nothing(tmp_path: Path) -> None:
    assert _names(Entry(origin=ORIGIN, name="does-not-exist"), tmp_path) == []


def test_order_file_overrides_lexicographic_order(tmp_path: Path) -> None:
    _touch(tmp_path, "aliases/a.sh", "aliases/b.sh", "aliases/c.sh", "aliases/d.sh")
    (tmp_path / "aliases" / ".fresh-order").write_text("d.sh\nb.sh\n\n")
    entry = Entry(origin=ORIGIN, name="aliases/*")

    assert _names(entry, tmp_path) == ["aliases/d.sh", "aliases/b.sh", "aliases/a.sh", "aliases/c.sh"]


def test_order_file_is_never_a_source(tmp_path: Path) -> None:
    _touch(tmp_path, "aliases/a.sh")
    (tmp_path / "aliases" / ".fresh-order").write_text("a.sh\n")

    entry = Entry(origin=ORIGIN, name="aliases/.*")

    assert _names(entry, tmp_path) == []


def test_directory_walk_is_lexicographic_without_order_file(tmp_path: Path) -> None:
    _touch(tmp_path, "vim/z.vim", "vim/colors/a.vim", "vim/autoload/x.vim", "vim/.netrwhist", "vim/a.vim")
    entry = Entry(origin=ORIGIN, name="vim", options=EntryOptions(file="~/.vim/"))

    assert _names(entry, tmp_path) == [
        "vim/.netrwhist",
        "vim/a.vim",
        "vim/autoload/x.vim",
        "vim/colors/a.vim",
        "vim/z.vim",
    ]


def test_directory_walk_of_missing_directory(tmp_path: Path) -> None:
    entry = Entry(origin=ORIGIN, name="vim", options=EntryOptions(file="~/.vim/"))

    assert _names(entry, tmp_path) == []


def test_apply_order_keeps_unlisted_in_original_order() -> None:
    paths = ["dir/a", "dir/b", "dir/c"]

    assert apply_order(paths, ["c", "missing", "c"], "dir") == ["dir/c", "dir/a", "dir/b"]


def test_git_ref_mode_filters_listing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    tree = [
        ".fresh-order",
        "aliases/git.sh",
        "aliases/.hidden",
        "aliases/nested/deep.sh",
        "vim/colors/a.vim",
        "vim/vimrc",
        "vimrc",
    ]
    calls: list[tuple[str, ...]] = []

    def fake_list_tree(repository: Path, ref: str) -> list[str]:
        calls.append(("ls-tree", str(repository), ref))
        return tree

    def fake_show_object(repository: Path, ref: str, path: str) -> bytes:
        calls.append(("show", ref, path))
        return b"vimrc\n"

    monkeypatch.setattr("fresh.git.list_tree", fake_list_tree)
    monkeypatch.setattr("fresh.git.show_object", fake_show_object)

    glob_entry = Entry(origin=ORIGIN, name="aliases/*", options=EntryOptions(ref="v1"))
    assert _names(glob_entry, tmp_path) == ["aliases/git.sh"]

    dir_entry = Entry(origin=ORIGIN, name="vim", options=EntryOptions(ref="v1", file="~/.vim/"))
    assert _names(dir_entry, tmp_path) == ["vim/colors/a.vim", "vim/vimrc"]

    calls.clear()
    top_entry = Entry(origin=ORIGIN, name="*", options=EntryOptions(ref="v1"))
    assert _names(top_entry, tmp_path) == ["vimrc"]
    assert ("show", "v1", ".fresh-order") in calls
