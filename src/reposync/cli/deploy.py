"""
reposync CLI - deploy commands.

merge-branch-into and merge-from-trunk merge into a deploy branch and push
it; push, commit-and-push and update-submodule-pointer send local work to
the remote.
"""

from pathlib import Path

import typer
from rich.console import Console

from reposync.cli.errors import ExitCode, print_error
from reposync.cli.runtime import Operation, Runtime
from reposync.cli.sync import SUBMODULE_HELP, parse_selector
from reposync.core.deploy import (
    DeployMerger,
    MergeResult,
    MergeStatus,
    PushEngine,
    PushResult,
    merge_failure_message,
    report_merge_result,
)

console = Console()


def finish_merge(op: Operation, result: MergeResult) -> None:
    """Alert on and journal a merge result, exiting non-zero unless it succeeded."""
    if result.status in (MergeStatus.RACE, MergeStatus.CONFLICT) and result.start_commit:
        op.journal.rollback(result.path, result.start_commit, result.status.value)

    exit_code = report_merge_result(result, op.shared.alerts)
    if exit_code != ExitCode.SUCCESS:
        print_error(merge_failure_message(result), reason=result.detail or None)
        raise typer.Exit(exit_code)

    if result.merged:
        console.print(f"[green]✓[/green] {result.summary()} ({(result.head or '')[:12]})")
    else:
        console.print(f"[green]✓[/green] {result.summary()}, nothing to merge")


def print_push_result(result: PushResult) -> None:
    if result.committed:
        console.print(f"[green]✓[/green] Committed {result.head[:12]}")
    console.print(f"[green]✓[/green] Pushed {result.branch}")
    if result.parent_updated:
        console.print("[green]✓[/green] Updated the superproject's submodule pointer")


def merge_branch_into(
    ctx: typer.Context,
    directory: Path = typer.Argument(..., help="Workspace to merge in"),
    target: str = typer.Argument(..., help="Deploy branch to merge into"),
    source: str = typer.Argument(..., help="Branch to merge from"),
    submodule: list[str] = typer.Option([], "--submodule", "-s", help=SUBMODULE_HELP),
) -> None:
    """
    Merge SOURCE into the deploy branch TARGET and push it.

    If someone else pushes to TARGET meanwhile, the merge is rolled back
    and the command fails.

    Examples:
        reposync merge-branch-into ~/jobs/webapp deploy-1 hotfix-22
    """
    selector = parse_selector(submodule)
    runtime = Runtime.from_typer(ctx)
    path = directory.resolve()

    with runtime.operation(
        "merge-branch-into", path.name, path=path, target=target, source=source
    ) as op:
        result = DeployMerger(op.shared).merge_branch_into(path, target, source, selector)
        finish_merge(op, result)


def merge_from_trunk(
    ctx: typer.Context,
    directory: Path = typer.Argument(..., help="Workspace to merge in"),
    target: str = typer.Argument(..., help="Deploy branch to merge into"),
    submodule: list[str] = typer.Option([], "--submodule", "-s", help=SUBMODULE_HELP),
) -> None:
    """
    Merge the trunk branch into the deploy branch TARGET and push it.

    Examples:
        reposync merge-from-trunk ~/jobs/webapp deploy-1
    """
    selector = parse_selector(submodule)
    runtime = Runtime.from_typer(ctx)
    path = directory.resolve()

    with runtime.operation("merge-from-trunk", path.name, path=path, target=target) as op:
        result = DeployMerger(op.shared).merge_from_trunk(path, target, selector)
        finish_merge(op, result)


def push(
    ctx: typer.Context,
    directory: Path = typer.Argument(Path("."), help="Repository to push"),
) -> None:
    """
    Rebase the current branch of DIRECTORY onto origin and push it.

    Examples:
        reposync push ~/jobs/webapp
    """
    runtime = Runtime.from_typer(ctx)
    path = directory.resolve()

    with runtime.operation("push", path.name, path=path) as op:
        result = PushEngine(op.shared).push(path)
    print_push_result(result)


def commit_and_push(
    ctx: typer.Context,
    directory: Path = typer.Argument(..., help="Repository to commit in"),
    commit_args: list[str] = typer.Argument(None, help="Arguments for git commit, after --"),
) -> None:
    """
    Commit all changes in DIRECTORY (if any) and push.

    Examples:
        reposync commit-and-push ~/jobs/webapp -- -m "Update translations"
    """
    runtime = Runtime.from_typer(ctx)
    path = directory.resolve()
    args = list(commit_args or [])

    with runtime.operation("commit-and-push", path.name, path=path) as op:
        result = PushEngine(op.shared).commit_and_push(path, args)
    print_push_result(result)


def update_submodule_pointer(
    ctx: typer.Context,
    directory: Path = typer.Argument(..., help="Submodule working tree"),
    branch: str | None = typer.Option(
        None, "--branch", "-b", help="Superproject branch to update (default: trunk)"
    ),
) -> None:
    """
    Point the superproject's gitlink for DIRECTORY at trunk, and push it.

    Examples:
        reposync update-submodule-pointer ~/jobs/webapp/third_party/shared
    """
    runtime = Runtime.from_typer(ctx)
    path = directory.resolve()

    with runtime.operation("update-submodule-pointer", path.name, path=path) as op:
        updated = PushEngine(op.shared).update_submodule_pointer_to_trunk(path, branch)

    if updated:
        console.print(f"[green]✓[/green] Updated submodule pointer for {path.name}")
    else:
        console.print(f"[blue]Submodule pointer for {path.name} already up to date[/blue]")
