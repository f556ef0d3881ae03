"""
Stash deduplication engine.

Stashes are compared by a digest over their sorted file list and, for each
file, the content held in each of the stash's three layers (worktree, index,
untracked). Stashes with equal digests form a duplicate group; the most
recent member (lowest index) is kept and the rest are dropped from the
highest index down, because every drop renumbers the stashes above it.
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple
from dataclasses import dataclass, field

from gitplus.config import GitPlusConfig
from gitplus.gitcmd import GitGateway, ProcessFailure, StashEntry


@dataclass
class StashRecord:
    """
    A stash as seen in one enumeration of the stash list.

    `index` is only meaningful for that enumeration: any drop renumbers the
    stash list.
    """
    index: int
    reference: str
    files: Tuple[str, ...] = ()
    digest: Optional[str] = None
    message: str = ""

    def __post_init__(self):
        self.files = tuple(sorted(set(self.files)))


@dataclass
class DuplicateGroup:
    """Stashes sharing one digest, most recent first."""
    digest: str
    members: List[StashRecord]

    @property
    def keeper(self) -> StashRecord:
        return self.members[0]

    @property
    def redundant(self) -> List[StashRecord]:
        return self.members[1:]

    def __len__(self) -> int:
        return len(self.members)


@dataclass
class CleanupResult:
    """
    Outcome of a cleanup run.

    Per-stash problems never abort the run; they are collected here and
    reported at the end.
    """
    deleted: List[StashRecord] = field(default_factory=list)
    failed: List[Tuple[StashRecord, ProcessFailure]] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def deleted_count(self) -> int:
        return len(self.deleted)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    def skip(self, reference: str, reason: str) -> None:
        self.skipped.append((reference, reason))


def collect_stashes(gateway: GitGateway,
                    result: Optional[CleanupResult] = None,
                    entries: Optional[List[StashEntry]] = None) -> List[StashRecord]:
    """
    Enumerate all stashes together with the files each one touches.

    `entries` is a listing the caller already holds; when omitted the stash
    list is read once here.

    A stash whose file list cannot be read is left out and noted on
    `result`; failing to list the stashes at all raises `ProcessFailure`.
    """
    records = []
    if entries is None:
        entries = gateway.list_stashes()

    for entry in entries:
        try:
            files = gateway.show_file_list(entry.reference)
        except ProcessFailure as e:
            if result is not None:
                result.skip(entry.reference, f"could not list files: {e}")
            continue
        records.append(StashRecord(
            index=entry.index,
            reference=entry.reference,
            files=tuple(files),
            message=entry.message,
        ))
    return records


def build_digest_buffer(gateway: GitGateway, record: StashRecord) -> bytes:
    """
    Serialize a stash's file list and layered content into one byte stream.

    Layout::

        <file>\\n<file>\\n---\\n
        FILE:<path>\\n
        PART:<LABEL>\\n<content>[\\n]
        ...

    A layer that does not contain the file writes nothing, not even its
    marker; every included layer is preceded by its label.
    """
    buffer = bytearray()
    buffer += "\n".join(record.files).encode()
    buffer += f"\n{GitPlusConfig.DIGEST_SEPARATOR}\n".encode()

    for path in record.files:
        buffer += f"FILE:{path}\n".encode()
        for label, suffix in GitPlusConfig.STASH_COMPONENTS:
            content, found = gateway.read_object(f"{record.reference}{suffix}", path)
            if not found:
                continue
            buffer += f"PART:{label}\n".encode()
            buffer += content
            if not content.endswith(b"\n"):
                buffer += b"\n"

    return bytes(buffer)


def compute_digest(gateway: GitGateway, record: StashRecord) -> str:
    """Return the content digest of a stash."""
    return gateway.hash_bytes(build_digest_buffer(gateway, record))


def digest_stashes(gateway: GitGateway, records: Iterable[StashRecord],
                   result: Optional[CleanupResult] = None) -> List[StashRecord]:
    """
    Compute the digest of every record.

    Records whose content cannot be read are dropped from the returned list
    and noted on `result`.
    """
    digested = []
    for record in records:
        try:
            record.digest = compute_digest(gateway, record)
        except ProcessFailure as e:
            if result is not None:
                result.skip(record.reference, f"could not hash content: {e}")
            continue
        digested.append(record)
    return digested


def find_duplicate_groups(records: Iterable[StashRecord]) -> List[DuplicateGroup]:
    """
    Group records by digest.

    Only groups of two or more are returned. Members are ordered by index,
    so the first member of each group is the most recent stash; groups are
    ordered by that first index.
    """
    by_digest: Dict[str, List[StashRecord]] = {}
    for record in records:
        by_digest.setdefault(record.digest, []).append(record)

    groups = [
        DuplicateGroup(digest=digest, members=sorted(members, key=lambda r: r.index))
        for digest, members in by_digest.items()
        if len(members) > 1
    ]
    groups.sort(key=lambda g: g.keeper.index)
    return groups


def plan_deletions(groups: Iterable[DuplicateGroup]) -> List[StashRecord]:
    """
    Return every non-keeper stash, highest index first.

    Dropping stash@{k} renumbers every stash after it down by one, so deleting
    from the top keeps each remaining index in the plan valid.
    """
    to_delete = [record for group in groups for record in group.redundant]
    to_delete.sort(key=lambda r: r.index, reverse=True)
    return to_delete


def execute_plan(gateway: GitGateway, plan: Iterable[StashRecord],
                 result: Optional[CleanupResult] = None,
                 on_progress: Optional[Callable[[StashRecord, Optional[ProcessFailure]], None]] = None
                 ) -> CleanupResult:
    """
    Drop the planned stashes one at a time, in plan order.

    A failed drop is recorded and the run moves on to the next entry.
    """
    if result is None:
        result = CleanupResult()

    for record in plan:
        error = None
        try:
            gateway.drop(record.index)
        except ProcessFailure as e:
            error = e
            result.failed.append((record, e))
        else:
            result.deleted.append(record)
        if on_progress is not None:
            on_progress(record, error)

    return result
