"""
Git process gateway.

All git invocations made by the stash commands go through `GitGateway`, which
runs them with GitPython, records the command-line equivalent and turns
GitPython's command errors into `ProcessFailure`.
"""

import hashlib
from typing import List, Optional, Tuple
from dataclasses import dataclass

from git import Repo
from git.exc import CommandError

from gitplus.config import GitPlusConfig
from gitplus.logger import GitCommandLogger


class ProcessFailure(Exception):
    """A git process exited with a nonzero code (or could not be started)."""

    def __init__(self, command: str, status: Optional[int] = None, stderr: str = ""):
        self.command = command
        self.status = status
        self.stderr = stderr
        message = f"'{command}' failed"
        if status is not None:
            message += f" with exit code {status}"
        if stderr:
            message += f": {stderr}"
        super().__init__(message)

    @classmethod
    def from_git_error(cls, command: str, error: CommandError) -> "ProcessFailure":
        status = error.status if isinstance(error.status, int) else None
        stderr = error.stderr if isinstance(error.stderr, str) else ""
        # GitPython formats stderr as "\n  stderr: '...'"
        stderr = stderr.strip()
        if stderr.startswith("stderr:"):
            stderr = stderr[len("stderr:"):].strip().strip("'").strip()
        return cls(command, status, stderr)


@dataclass
class StashEntry:
    """One line of `git stash list`."""
    index: int
    reference: str
    message: str = ""


class GitGateway:
    """
    Runs the git subcommands the stash engine needs.

    Read-only commands always run. `drop` is the only mutating operation and
    is skipped when the logger is in dry-run mode.
    """

    def __init__(self, repo: Repo, logger: Optional[GitCommandLogger] = None):
        self.repo = repo
        self.logger = logger or GitCommandLogger()

    def _run(self, cmd: str, description: Optional[str], subcommand: str, *args,
             mutating: bool = False, **kwargs):
        entry = self.logger.log(cmd, description, mutating=mutating)
        if mutating and self.logger.dry_run:
            return None
        entry.executed = True
        try:
            output = getattr(self.repo.git, subcommand)(*args, **kwargs)
        except CommandError as e:
            entry.result = f"exit {e.status}"
            raise ProcessFailure.from_git_error(cmd, e) from e
        if isinstance(output, str):
            entry.result = output
        return output

    def list_stashes(self) -> List[StashEntry]:
        """
        List all stashes, most recent first.

        Bash equivalent:
            git stash list

        Each line looks like ``stash@{0}: On main: message``; its position
        in the output is the stash index.
        """
        output = self._run("git stash list", "List stashes", "stash", "list")
        stashes = []
        for line in output.splitlines():
            line = line.strip()
            if not line:
                continue
            reference, _, message = line.partition(":")
            stashes.append(StashEntry(
                index=len(stashes),
                reference=reference.strip(),
                message=message.strip(),
            ))
        return stashes

    def show_file_list(self, reference: str) -> List[str]:
        """
        List the paths touched by a stash, including untracked files.

        Bash equivalent:
            git stash show --name-only -z --no-renames --include-untracked "{reference}"

        Paths are NUL-separated so that git does not quote or escape them,
        and rename detection is off so both sides of a rename are listed.
        """
        output = self._run(
            f'git stash show --name-only -z --no-renames --include-untracked "{reference}"',
            f"List files in {reference}",
            "stash", "show", "--name-only", "-z", "--no-renames", "--include-untracked", reference,
        )
        return [path for path in output.split("\0") if path]

    def read_object(self, ref: str, path: str) -> Tuple[bytes, bool]:
        """
        Read the raw bytes of a file as stored under a ref.

        Bash equivalent:
            git show "{ref}:{path}"

        Returns:
            (content, found). A missing object is reported as ``(b"", False)``
            rather than an error.

        Raises:
            ProcessFailure: For any failure other than a missing object
        """
        try:
            output = self._run(
                f'git show "{ref}:{path}"',
                f"Read {path} from {ref}",
                "show", f"{ref}:{path}",
                stdout_as_string=False,
                strip_newline_in_stdout=False,
            )
        except ProcessFailure as e:
            if e.status == GitPlusConfig.NOT_FOUND_EXIT_CODE:
                return b"", False
            raise
        return output or b"", True

    def drop(self, index: int) -> None:
        """
        Drop the stash at a position in the stash list.

        Bash equivalent:
            git stash drop "stash@{index}"
        """
        reference = GitPlusConfig.stash_ref(index)
        self._run(
            f'git stash drop "{reference}"',
            f"Drop {reference}",
            "stash", "drop", "--quiet", reference,
            mutating=True,
        )

    def hash_bytes(self, buffer: bytes) -> str:
        """
        Return the git blob id of a buffer.

        Bash equivalent:
            git hash-object --stdin
        """
        entry = self.logger.log("git hash-object --stdin", "Hash stash content (computed in-process)")
        header = f"blob {len(buffer)}\0".encode()
        digest = hashlib.sha1(header + buffer).hexdigest()
        entry.executed = True
        entry.result = digest
        return digest
