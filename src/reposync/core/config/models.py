"""
Configuration data models for reposync.

These models define the structure of .reposync.json and
~/.config/reposync/config.json files, with validation via Pydantic.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TimeoutConfig(BaseModel):
    """
    Per-call time budgets, in seconds.

    Exceeding any of these fails the enclosing operation outright.
    """
    prune_tags: float = Field(
        default=60,
        gt=0,
        description="Best-effort pruning of stale tags before a fetch"
    )
    fetch: float = Field(
        default=7200,
        gt=0,
        description="Fetching new history into a mirror"
    )
    clone: float = Field(
        default=3600,
        gt=0,
        description="Cloning a canonical mirror for the first time"
    )
    checkout: float = Field(
        default=600,
        gt=0,
        description="Each local step of a checkout, reset, clean, merge or rebase"
    )
    submodule_sync: float = Field(
        default=600,
        gt=0,
        description="git submodule sync"
    )
    submodule_update: float = Field(
        default=3600,
        gt=0,
        description="git submodule update --init --recursive"
    )
    push: float = Field(
        default=3600,
        gt=0,
        description="Pushing a branch to the remote"
    )
    lfs: float = Field(
        default=3600,
        gt=0,
        description="git lfs pull / push"
    )


class SubmoduleConfig(BaseModel):
    """
    Submodule materialization settings.

    Submodules listed in workdir_linked are large and long-lived: they are
    shared from a canonical mirror via a linked git dir instead of being
    cloned per workspace.
    """
    workdir_linked: list[str] = Field(
        default_factory=list,
        description="Submodule paths materialized by linking a shared mirror"
    )

    @field_validator("workdir_linked", mode="before")
    @classmethod
    def normalize_paths(cls, v: object) -> object:
        if isinstance(v, str):
            v = [p for p in v.split(",")]
        if isinstance(v, list):
            return [str(p).strip().strip("/") for p in v if str(p).strip().strip("/")]
        return v


class AlertConfig(BaseModel):
    """Where fatal conditions are reported."""
    enabled: bool = Field(
        default=True,
        description="Send alerts at all"
    )
    command: Optional[list[str]] = Field(
        default=None,
        description="Alert command argv; message is written to its stdin"
    )
    channel: Optional[str] = Field(
        default=None,
        description="Chat channel passed to the alert command as --slack"
    )
    timeout: float = Field(
        default=60,
        gt=0,
        description="Seconds to wait for the alert command"
    )

    @field_validator("command", mode="before")
    @classmethod
    def split_command(cls, v: object) -> object:
        if isinstance(v, str):
            return v.split() or None
        return v


class JournalConfig(BaseModel):
    """JSONL operation journal settings."""
    enabled: bool = Field(
        default=True,
        description="Write one JSON line per operation event"
    )
    log_dir: Optional[Path] = Field(
        default=None,
        description="Directory for journal files (defaults to XDG data home)"
    )


class ReposyncConfig(BaseModel):
    """
    Top-level reposync configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = ReposyncConfig(
        ...     repos_root=Path("/mnt/jenkins/repositories"),
        ...     submodules=SubmoduleConfig(workdir_linked=["intl/translations"]),
        ... )
        >>> config.trunk_branch
        'master'
    """
    repos_root: Path = Field(
        default_factory=lambda: Path.home() / "jobs" / "repositories",
        description="Shared root holding one canonical mirror per repository"
    )
    workspace_root: Path = Field(
        default=Path("."),
        description="Directory in which workspaces are created"
    )
    remote: str = Field(
        default="origin",
        description="The single upstream remote"
    )
    trunk_branch: str = Field(
        default="master",
        description="Default branch; never a valid deploy-merge target"
    )
    lock_name: str = Field(
        default="repositories",
        description="Lock serializing fetches and lfs traffic under repos_root"
    )
    lock_wait_seconds: float = Field(
        default=7200,
        gt=0,
        description="How long to wait for the shared lock before failing"
    )

    timeouts: TimeoutConfig = Field(
        default_factory=TimeoutConfig,
        description="Per-call time budgets"
    )
    submodules: SubmoduleConfig = Field(
        default_factory=SubmoduleConfig,
        description="Submodule materialization"
    )
    alerts: AlertConfig = Field(
        default_factory=AlertConfig,
        description="Alert delivery"
    )
    journal: JournalConfig = Field(
        default_factory=JournalConfig,
        description="Operation journal"
    )

    model_config = ConfigDict(
        extra="allow",
        validate_assignment=True,
    )

    @field_validator("repos_root", "workspace_root", mode="after")
    @classmethod
    def expand_path(cls, v: Path) -> Path:
        return v.expanduser()
