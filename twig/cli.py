"""
Command-line interface for twig.

Each command opens the repository in the working directory, runs one core
operation, prints its result and saves the repository state.
"""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, get_args

import click

from twig.config import LogLevel, config as default_config
from twig.logging import initialize_logging
from twig.version_control import (
    Commit,
    FastForwardableError,
    Repository,
    StatusReport,
    TwigError,
)


@contextmanager
def _session(ctx: click.Context) -> Iterator[Repository]:
    """Open the repository; save on success, report TwigErrors as CLI errors."""
    try:
        with Repository.open(ctx.obj["root"], ctx.obj["config"]) as repo:
            yield repo
    except TwigError as e:
        raise click.ClickException(e.message) from e


def format_commit(commit: Commit) -> str:
    lines = ["===", f"commit {commit.digest}"]
    if commit.merge_parent:
        lines.append(f"Merge: {commit.parent[:7]} {commit.merge_parent[:7]}")
    when = datetime.fromisoformat(commit.timestamp).astimezone()
    lines.append(f"Date: {when.strftime('%a %b %d %H:%M:%S %Y %z')}")
    lines.append(commit.message)
    lines.append("")
    return "\n".join(lines)


def format_status(report: StatusReport) -> str:
    def section(title: str, entries: List[str]) -> List[str]:
        return [f"=== {title} ===", *entries, ""]

    branches = [
        f"*{name}" if name == report.current_branch else name
        for name in report.branches
    ]
    modified = [f"{path} ({kind})" for path, kind in report.modified.items()]
    lines = (
        section("Branches", branches)
        + section("Staged Files", report.staged)
        + section("Removed Files", report.removed)
        + section("Modifications Not Staged For Commit", modified)
        + section("Untracked Files", report.untracked)
    )
    return "\n".join(lines)


@click.group()
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    help="Working-tree root of the repository",
)
@click.option(
    "--log-level",
    type=click.Choice(get_args(LogLevel), case_sensitive=False),
    default=None,
    help="Override the configured log level",
)
@click.pass_context
def main(ctx: click.Context, root: Path, log_level: Optional[str]) -> None:
    """twig - a small content-addressed version control system."""
    log_config = default_config.logging
    initialize_logging(
        log_dir=Path(log_config.log_dir),
        level=(log_level or log_config.level).upper(),
        format_string=log_config.format,
        rotation=log_config.rotation,
        retention=log_config.retention,
        enable_file_logging=log_config.enable_file_logging,
        enable_console_logging=log_config.enable_console_logging,
    )
    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["config"] = default_config


@main.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create a repository in the working directory."""
    try:
        repo = Repository.init(ctx.obj["root"], ctx.obj["config"])
    except TwigError as e:
        raise click.ClickException(e.message) from e
    click.echo(f"Initialized empty twig repository in {repo.storage.base_dir}")


@main.command()
@click.argument("file")
@click.pass_context
def add(ctx: click.Context, file: str) -> None:
    """Stage FILE for the next commit."""
    with _session(ctx) as repo:
        repo.add(file)


@main.command("rm")
@click.argument("file")
@click.pass_context
def remove(ctx: click.Context, file: str) -> None:
    """Unstage FILE, or stage it for removal."""
    with _session(ctx) as repo:
        repo.remove(file)


@main.command()
@click.argument("message", required=False, default="")
@click.pass_context
def commit(ctx: click.Context, message: str) -> None:
    """Commit the staged changes with MESSAGE."""
    with _session(ctx) as repo:
        repo.commit(message)


@main.command()
@click.pass_context
def log(ctx: click.Context) -> None:
    """Show history from head along first parents."""
    with _session(ctx) as repo:
        for entry in repo.log():
            click.echo(format_commit(entry))


@main.command("global-log")
@click.pass_context
def global_log(ctx: click.Context) -> None:
    """Show every commit ever made."""
    with _session(ctx) as repo:
        for entry in repo.global_log():
            click.echo(format_commit(entry))


@main.command()
@click.argument("message")
@click.pass_context
def find(ctx: click.Context, message: str) -> None:
    """Print the ids of commits with exactly MESSAGE."""
    with _session(ctx) as repo:
        for digest in repo.find(message):
            click.echo(digest)


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show branches, staged files and working-tree changes."""
    with _session(ctx) as repo:
        click.echo(format_status(repo.status()))


@main.command()
@click.argument("branch", required=False)
@click.option("--file", "-f", "file", default=None, help="Restore a single file")
@click.option(
    "--commit", "-c", "commit_id", default=None, help="Commit to restore --file from"
)
@click.pass_context
def checkout(
    ctx: click.Context,
    branch: Optional[str],
    file: Optional[str],
    commit_id: Optional[str],
) -> None:
    """Switch to BRANCH, or restore --file from head or --commit."""
    if file is None and (branch is None or commit_id is not None):
        raise click.UsageError("Give a branch name, or --file with optional --commit.")
    if file is not None and branch is not None:
        raise click.UsageError("Give either a branch name or --file, not both.")

    with _session(ctx) as repo:
        if file is None:
            repo.checkout_branch(branch)
        elif commit_id is None:
            repo.checkout_file(file)
        else:
            repo.checkout_commit_file(commit_id, file)


@main.command()
@click.argument("name")
@click.pass_context
def branch(ctx: click.Context, name: str) -> None:
    """Create branch NAME at head."""
    with _session(ctx) as repo:
        repo.branch(name)


@main.command("rm-branch")
@click.argument("name")
@click.pass_context
def remove_branch(ctx: click.Context, name: str) -> None:
    """Delete branch NAME."""
    with _session(ctx) as repo:
        repo.remove_branch(name)


@main.command()
@click.argument("name")
@click.pass_context
def merge(ctx: click.Context, name: str) -> None:
    """Merge branch NAME into the current branch."""
    with _session(ctx) as repo:
        try:
            result = repo.merge(name)
        except FastForwardableError:
            repo.fast_forward(name)
            click.echo("Current branch fast-forwarded.")
            return
        if result.has_conflicts:
            click.echo("Encountered a merge conflict.")


@main.command()
@click.argument("commit_id")
@click.pass_context
def reset(ctx: click.Context, commit_id: str) -> None:
    """Check out COMMIT_ID and move the current branch to it."""
    with _session(ctx) as repo:
        repo.reset(commit_id)


if __name__ == "__main__":
    main()
