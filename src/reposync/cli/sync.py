"""
reposync CLI - workspace sync commands.

sync-to, sync-to-origin, pull and pull-in-branch bring a workspace to a
revision; see reposync.core.sync for what each step does.
"""

from pathlib import Path

import typer
from rich.console import Console

from reposync.cli.errors import ExitCode, print_error
from reposync.cli.runtime import Runtime
from reposync.core.context import repo_name_from_url
from reposync.core.sync import SubmoduleSelector, SyncOrchestrator, SyncResult

console = Console()

SUBMODULE_HELP = (
    "Submodule path or prefix to materialize (repeatable). "
    "Default: all submodules; 'none' skips them"
)


def parse_selector(values: list[str] | None) -> SubmoduleSelector:
    """Parse --submodule values, exiting with a usage error when invalid."""
    try:
        return SubmoduleSelector.parse(values)
    except ValueError as e:
        print_error(str(e), solution="Pass either 'none' or a list of submodule paths")
        raise typer.Exit(ExitCode.USER_ERROR)


def print_sync_result(result: SyncResult) -> None:
    verb = "Created" if result.created else "Synced"
    console.print(f"[green]✓[/green] {verb} {result.summary()}")
    if not result.submodules.skipped:
        console.print(f"  Submodules: {result.submodules.summary()}")


def sync_to(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Remote URL of the repository"),
    commit_ish: str = typer.Argument("master", help="Branch, tag or commit to check out"),
    submodule: list[str] = typer.Option([], "--submodule", "-s", help=SUBMODULE_HELP),
) -> None:
    """
    Bring the workspace for REPO to COMMIT_ISH.

    Creates the workspace (and the shared mirror) when missing. Local
    changes in an existing workspace are discarded.

    Examples:
        reposync sync-to git@github.com:Khan/webapp master
        reposync sync-to git@github.com:Khan/webapp deploy-1 -s none
    """
    selector = parse_selector(submodule)
    runtime = Runtime.from_typer(ctx)
    name = repo_name_from_url(repo)

    with runtime.operation("sync-to", name, repo=repo, revision=commit_ish) as op:
        result = SyncOrchestrator(op.shared).sync_to(repo, commit_ish, selector)
    print_sync_result(result)


def sync_to_origin(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Remote URL of the repository"),
    commit_ish: str = typer.Argument("master", help="Branch to follow"),
    submodule: list[str] = typer.Option([], "--submodule", "-s", help=SUBMODULE_HELP),
) -> None:
    """
    Like sync-to, but follow origin/COMMIT_ISH and reset the local branch to it.

    Examples:
        reposync sync-to-origin git@github.com:Khan/webapp deploy-1
    """
    selector = parse_selector(submodule)
    runtime = Runtime.from_typer(ctx)
    name = repo_name_from_url(repo)

    with runtime.operation("sync-to-origin", name, repo=repo, revision=commit_ish) as op:
        result = SyncOrchestrator(op.shared).sync_to_tracking_origin(repo, commit_ish, selector)
    print_sync_result(result)


def pull(
    ctx: typer.Context,
    directory: Path = typer.Argument(Path("."), help="Workspace to update"),
    submodule: list[str] = typer.Option([], "--submodule", "-s", help=SUBMODULE_HELP),
) -> None:
    """
    Reset DIRECTORY to the remote trunk branch.

    Examples:
        reposync pull ~/jobs/webapp
    """
    selector = parse_selector(submodule)
    runtime = Runtime.from_typer(ctx)
    path = directory.resolve()

    with runtime.operation("pull", path.name, path=path) as op:
        result = SyncOrchestrator(op.shared).pull(path, selector)
    print_sync_result(result)


def pull_in_branch(
    ctx: typer.Context,
    directory: Path = typer.Argument(..., help="Workspace to update"),
    branch: str = typer.Argument(..., help="Branch to check out at its remote state"),
    submodule: list[str] = typer.Option([], "--submodule", "-s", help=SUBMODULE_HELP),
) -> None:
    """
    Reset DIRECTORY to origin/BRANCH and check out BRANCH.

    Examples:
        reposync pull-in-branch ~/jobs/webapp deploy-1
    """
    selector = parse_selector(submodule)
    runtime = Runtime.from_typer(ctx)
    path = directory.resolve()

    with runtime.operation("pull-in-branch", path.name, path=path, branch=branch) as op:
        result = SyncOrchestrator(op.shared).pull_in_branch(path, branch, selector)
    print_sync_result(result)
