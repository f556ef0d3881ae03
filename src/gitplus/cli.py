"""
gitplus - Git productivity commands
===================================

Command-line entry point. `GitPlusManager` holds the repository and the
command logger; the click commands at the bottom are thin wrappers around
its methods.

Every Git operation documents its command-line equivalent for transparency.
"""

import sys
from pathlib import Path
from typing import List

import click
import git
from git import Repo
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from gitplus import ui
from gitplus.config import GitPlusConfig
from gitplus.gitcmd import GitGateway, ProcessFailure
from gitplus.logger import GitCommandLogger, console
from gitplus.stash import (
    CleanupResult,
    DuplicateGroup,
    StashRecord,
    collect_stashes,
    digest_stashes,
    execute_plan,
    find_duplicate_groups,
    plan_deletions,
)


class GitPlusManager:
    """
    Runs gitplus commands against the repository containing the current
    directory.
    """

    def __init__(self, debug: bool = False, dry_run: bool = False, save_history: bool = False):
        """
        Initialize the manager.

        Args:
            debug: Show debug output including git commands
            dry_run: Preview mode; destructive commands are not executed
            save_history: Save command history to file
        """
        self.debug = debug
        self.dry_run = dry_run
        self.save_history = save_history
        self.logger = GitCommandLogger(debug=debug, dry_run=dry_run)

        self._init_repo_info()

    def _init_repo_info(self) -> None:
        """Locate the repository and set up the git gateway."""
        try:
            self.logger.log("git rev-parse --show-toplevel", "Find repository root")
            self.repo = Repo(search_parent_directories=True)
            self.root = Path(self.repo.working_tree_dir)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError):
            console.print("[red]Not inside a Git repository[/red]")
            sys.exit(1)

        self.gateway = GitGateway(self.repo, self.logger)

    # ========== Stash Commands ==========

    def stash_cleanup(self, yes: bool = False) -> CleanupResult:
        """
        Detect duplicate stashes and drop all but the most recent of each.

        Bash equivalents:
            git stash list
            git stash show --name-only -z --no-renames --include-untracked stash@{N}
            git show stash@{N}:<file>     # worktree
            git show stash@{N}^2:<file>   # index
            git show stash@{N}^3:<file>   # untracked
            git hash-object --stdin
            git stash drop stash@{N}      # highest N first

        Args:
            yes: Skip the confirmation prompt
        """
        result = CleanupResult()
        console.print("[cyan]Analyzing stashes...[/cyan]")

        try:
            entries = self.gateway.list_stashes()
        except ProcessFailure as e:
            console.print(f"[red]ERROR: Failed to list stashes: {escape(str(e))}[/red]")
            sys.exit(1)

        if not entries:
            console.print("No stashes found.")
            return result

        if len(entries) == 1:
            console.print("Only one stash exists, nothing to compress.")
            return result

        console.print(f"Found {len(entries)} stashes.\n")

        records = collect_stashes(self.gateway, result, entries=entries)
        records = digest_stashes(self.gateway, records, result)

        for reference, reason in result.skipped:
            console.print(f"[yellow]Warning: skipping {escape(reference)}: {escape(reason)}[/yellow]")

        groups = find_duplicate_groups(records)
        if not groups:
            console.print("[green]✓ No duplicate stashes found.[/green]")
            return result

        plan = plan_deletions(groups)
        self._print_groups(groups, len(plan))

        if not (yes or GitPlusConfig.SKIP_CONFIRMATIONS):
            if not ui.confirm("Continue?", GitPlusConfig.CONFIRM_DEFAULT):
                console.print("Cancelled.")
                return result

        console.print("\n[cyan]Dropping duplicate stashes...[/cyan]")
        execute_plan(self.gateway, plan, result, on_progress=self._report_drop)

        verb = "would delete" if self.dry_run else "deleted"
        summary = f"\nDone: {verb} {result.deleted_count} stash(es)"
        if result.failed_count:
            summary += f" [red]({result.failed_count} failed)[/red]"
        console.print(summary)

        if not self.dry_run:
            try:
                remaining = len(self.gateway.list_stashes())
            except ProcessFailure as e:
                console.print(f"[yellow]Warning: could not count remaining stashes: {escape(str(e))}[/yellow]")
            else:
                console.print(f"Remaining stashes: {remaining}")

        return result

    def _print_groups(self, groups: List[DuplicateGroup], delete_count: int) -> None:
        console.print(Panel.fit(
            f"[bold]Found {len(groups)} group(s) of duplicate stashes[/bold]", style="cyan"
        ))
        for number, group in enumerate(groups, start=1):
            table = Table(title=f"Group {number}: {len(group)} duplicates", title_justify="left")
            table.add_column("Stash", style="cyan")
            table.add_column("Files", justify="right")
            table.add_column("Message")
            table.add_column("Action")
            for record in group.members:
                action = "[green]keep[/green]" if record is group.keeper else "[red]drop[/red]"
                table.add_row(escape(record.reference), str(len(record.files)),
                              escape(record.message), action)
            console.print(table)

        console.print(
            f"\n{delete_count} stash(es) will be dropped "
            "(the most recent stash of each group is kept)."
        )

    def _report_drop(self, record: StashRecord, error) -> None:
        if error is None:
            verb = "Would drop" if self.dry_run else "Dropped"
            console.print(f"[green]✓ {verb} {escape(record.reference)}[/green]")
        else:
            console.print(f"[red]✗ Failed to drop {escape(record.reference)}: {escape(str(error))}[/red]")


# ========== CLI Interface ==========

@click.group(invoke_without_command=True)
@click.option('--debug', '-d', is_flag=True, help='Enable debug output (shows git commands)')
@click.option('--dry-run', '-n', is_flag=True, help='Preview without dropping anything')
@click.option('--save-history', is_flag=True, help=f'Save command history to {GitPlusConfig.HISTORY_FILE}')
@click.pass_context
def cli(ctx, debug, dry_run, save_history):
    """
    Git productivity commands.

    Common workflow:

        gitplus stash-cleanup        # Drop duplicate stashes

        gitplus -n stash-cleanup     # Preview what would be dropped
    """
    # Show help if no command given
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    ctx.obj = GitPlusManager(debug=debug, dry_run=dry_run, save_history=save_history)

    # Save history on exit if requested
    if save_history:
        ctx.call_on_close(lambda: ctx.obj.logger.save_history(GitPlusConfig.HISTORY_FILE))


# ========== Stash Commands ==========

@cli.command('stash-cleanup')
@click.option('--yes', '-y', is_flag=True, help='Skip the confirmation prompt')
@click.pass_obj
def stash_cleanup(manager, yes):
    """Detect duplicate stashes and drop all but the most recent of each."""
    manager.stash_cleanup(yes)


@click.command()
@click.option('--debug', '-d', is_flag=True, help='Enable debug output (shows git commands)')
@click.option('--dry-run', '-n', is_flag=True, help='Preview without dropping anything')
@click.option('--yes', '-y', is_flag=True, help='Skip the confirmation prompt')
def stash_cleanup_main(debug, dry_run, yes):
    """Detect duplicate stashes and drop all but the most recent of each.

    Installed as `git-stash-cleanup`, so it also runs as `git stash-cleanup`.
    """
    GitPlusManager(debug=debug, dry_run=dry_run).stash_cleanup(yes)


if __name__ == "__main__":
    cli()
