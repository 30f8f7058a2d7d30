"""
reposync CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

from pathlib import Path

import typer
from rich.console import Console

from reposync import __version__
from reposync.cli import deploy, sync
from reposync.cli.runtime import setup_logging

PANEL_SYNC = "Sync Workspaces"
PANEL_DEPLOY = "Merge and Push"

app = typer.Typer(
    name="reposync",
    help="Keep build workspaces in sync with shared git mirrors",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    repos_root: Path | None = typer.Option(
        None,
        "--repos-root",
        help="Shared root of canonical mirrors (overrides config)",
    ),
    workspace_root: Path | None = typer.Option(
        None,
        "--workspace-root",
        help="Directory in which workspaces are created (overrides config)",
    ),
) -> None:
    """
    reposync - workspace synchronization for build agents.

    Every command exits 0 on success. On failure it sends an alert and
    exits non-zero.

    Common Workflows:
        reposync sync-to git@github.com:Khan/webapp master
        reposync pull ~/jobs/webapp
        reposync merge-from-trunk ~/jobs/webapp deploy-1
        reposync commit-and-push ~/jobs/webapp -- -m "Automated update"
    """
    setup_logging(debug)

    ctx.obj = {
        "debug": debug,
        "repos_root": repos_root,
        "workspace_root": workspace_root,
    }


app.command(name="sync-to", rich_help_panel=PANEL_SYNC)(sync.sync_to)
app.command(name="sync-to-origin", rich_help_panel=PANEL_SYNC)(sync.sync_to_origin)
app.command(name="pull", rich_help_panel=PANEL_SYNC)(sync.pull)
app.command(name="pull-in-branch", rich_help_panel=PANEL_SYNC)(sync.pull_in_branch)

app.command(name="merge-branch-into", rich_help_panel=PANEL_DEPLOY)(deploy.merge_branch_into)
app.command(name="merge-from-trunk", rich_help_panel=PANEL_DEPLOY)(deploy.merge_from_trunk)
app.command(name="push", rich_help_panel=PANEL_DEPLOY)(deploy.push)
app.command(name="commit-and-push", rich_help_panel=PANEL_DEPLOY)(deploy.commit_and_push)
app.command(name="update-submodule-pointer", rich_help_panel=PANEL_DEPLOY)(
    deploy.update_submodule_pointer
)


@app.command()
def version() -> None:
    """Show reposync version and exit."""
    console.print(f"reposync version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
