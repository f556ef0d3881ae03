from __future__ import annotations

import hashlib
import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Set, Tuple

import pytest
from git import Repo

# Rich output must stay plain text under the CLI runner and capsys.
os.environ.pop("FORCE_COLOR", None)
os.environ.pop("TTY_COMPATIBLE", None)

from gitplus.gitcmd import ProcessFailure, StashEntry


_REF_RE = re.compile(r"^stash@\{(\d+)\}(?:\^(\d))?$")


@dataclass
class FakeStash:
    worktree: Dict[str, bytes] = field(default_factory=dict)
    index: Dict[str, bytes] = field(default_factory=dict)
    untracked: Dict[str, bytes] = field(default_factory=dict)
    message: str = "WIP on main"

    @property
    def files(self) -> List[str]:
        return sorted(set(self.worktree) | set(self.index) | set(self.untracked))


@dataclass
class FakeGateway:
    """In-memory stash store that renumbers on drop like git does."""

    stashes: List[FakeStash] = field(default_factory=list)
    fail_file_lists: Set[str] = field(default_factory=set)
    fail_reads: Set[Tuple[str, str]] = field(default_factory=set)
    fail_drops: Set[int] = field(default_factory=set)
    list_error: bool = False
    dropped: List[int] = field(default_factory=list)
    reads: List[Tuple[str, str]] = field(default_factory=list)

    def _parse(self, ref: str) -> Tuple[FakeStash, str]:
        match = _REF_RE.match(ref)
        if match is None:
            raise AssertionError(f"unexpected ref {ref!r}")
        return self.stashes[int(match.group(1))], match.group(2) or ""

    def list_stashes(self) -> List[StashEntry]:
        if self.list_error:
            raise ProcessFailure("git stash list", 128, "fatal: not a git repository")
        return [
            StashEntry(index=i, reference=f"stash@{{{i}}}", message=s.message)
            for i, s in enumerate(self.stashes)
        ]

    def show_file_list(self, reference: str) -> List[str]:
        if reference in self.fail_file_lists:
            raise ProcessFailure(f"git stash show {reference}", 1, "boom")
        stash, _ = self._parse(reference)
        # Unsorted, with repeats, for the collector to normalise.
        return list(reversed(stash.files)) + list(stash.untracked)

    def read_object(self, ref: str, path: str) -> Tuple[bytes, bool]:
        self.reads.append((ref, path))
        if (ref, path) in self.fail_reads:
            raise ProcessFailure(f"git show {ref}:{path}", 1, "boom")
        stash, parent = self._parse(ref)
        layer = {"": stash.worktree, "2": stash.index, "3": stash.untracked}[parent]
        if path in layer:
            return layer[path], True
        return b"", False

    def drop(self, index: int) -> None:
        self.dropped.append(index)
        if index in self.fail_drops:
            raise ProcessFailure(f"git stash drop stash@{{{index}}}", 1, "boom")
        del self.stashes[index]

    def hash_bytes(self, buffer: bytes) -> str:
        return hashlib.sha1(buffer).hexdigest()


def tracked_stash(path: str = "a.txt", content: bytes = b"hello\n",
                  base: bytes = b"base\n", message: str = "WIP on main") -> FakeStash:
    """A stash of an unstaged edit to a tracked file."""
    return FakeStash(worktree={path: content}, index={path: base}, message=message)


# ---------- real git repositories ----------

@pytest.fixture
def git_repo(tmp_path: Path) -> Repo:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = Repo.init(tmp_path / "repo")
    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")
        config.set_value("commit", "gpgsign", "false")
    root = Path(repo.working_tree_dir)
    (root / "README.md").write_text("# Test\n")
    repo.git.add("README.md")
    repo.git.commit("-m", "Initial commit")
    return repo


def make_stash(repo: Repo, files: Dict[str, str], message: str,
               include_untracked: bool = False, staged: bool = False) -> None:
    """Write files into the worktree, optionally add them, and stash them."""
    root = Path(repo.working_tree_dir)
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    if staged:
        repo.git.add(*files)
    args = ["push", "-m", message]
    if include_untracked:
        args.insert(1, "--include-untracked")
    repo.git.stash(*args)
