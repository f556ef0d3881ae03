"""
Tool-wide settings for gitplus.

These are plain class attributes so that a copy of the tool can be tuned for
a particular workflow by editing one place.
"""


class GitPlusConfig:
    """
    Settings used by the stash commands - modify these to customize behavior.
    """

    # Stash addressing
    STASH_REF_FORMAT = "stash@{{{index}}}"  # stash@{N}

    # Content layers captured by a stash, in digest order: (label, ref suffix)
    # The worktree layer is the stash commit itself, the index layer is its
    # second parent and untracked files live in the third parent.
    STASH_COMPONENTS = (
        ("WORKTREE", ""),
        ("INDEX", "^2"),
        ("UNTRACKED", "^3"),
    )

    # Line written between the file list and the per-file content
    DIGEST_SEPARATOR = "---"

    # Exit code git uses when `git show <ref>:<path>` names no object
    NOT_FOUND_EXIT_CODE = 128

    # Command history
    HISTORY_FILE = ".gitplus_history.json"

    # Confirmation prompts
    CONFIRM_DEFAULT = False  # Answer used when the user just presses Enter
    SKIP_CONFIRMATIONS = False  # Skip confirmation prompts (dangerous!)

    @classmethod
    def stash_ref(cls, index: int) -> str:
        """Return the stash reference for a position in the stash list."""
        return cls.STASH_REF_FORMAT.format(index=index)
