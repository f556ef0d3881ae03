"""
Command logging for gitplus.

Every git operation is recorded with its command-line equivalent so that
`--debug` shows exactly what is being run and `--save-history` leaves an
audit trail.
"""

import json
from datetime import datetime
from typing import Optional, List
from dataclasses import dataclass, field

from rich.console import Console
from rich.markup import escape

# Global console for rich output
console = Console()


@dataclass
class CommandEntry:
    """Record of a git command execution."""
    command: str
    description: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    executed: bool = False
    result: Optional[str] = None


class GitCommandLogger:
    """
    Logs and documents all git command equivalents.

    Read-only commands are always executed; mutating commands are skipped in
    dry-run mode and only announced.
    """

    def __init__(self, debug: bool = False, dry_run: bool = False):
        self.debug = debug
        self.dry_run = dry_run
        self.commands: List[CommandEntry] = []

    def log(self, git_cmd: str, description: Optional[str] = None,
            mutating: bool = False) -> CommandEntry:
        """
        Log a git command with optional description.

        Args:
            git_cmd: The git command that would be executed
            description: Optional description of what the command does
            mutating: Whether the command changes repository state

        Returns:
            The recorded entry, so callers can fill in the outcome
        """
        entry = CommandEntry(command=git_cmd, description=description)
        self.commands.append(entry)

        if self.debug:
            console.print(f"[cyan][GIT][/cyan] {escape(git_cmd)}")
            if description:
                console.print(f"      [dim]{escape(description)}[/dim]")

        if self.dry_run and mutating:
            console.print(f"[yellow][DRY-RUN][/yellow] Would execute: {escape(git_cmd)}")

        return entry

    def save_history(self, filepath: str = ".gitplus_history.json") -> None:
        """Save command history for audit/learning."""
        history = []
        for entry in self.commands:
            history.append({
                "command": entry.command,
                "description": entry.description,
                "timestamp": entry.timestamp.isoformat(),
                "executed": entry.executed,
                "result": entry.result
            })

        with open(filepath, "w") as f:
            json.dump(history, f, indent=2)

        if self.debug:
            console.print(f"[green]Command history saved to {escape(filepath)}[/green]")
