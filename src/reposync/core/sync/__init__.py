"""
Workspace synchronization against shared canonical mirrors.

Usage:
    from reposync.core.sync import SyncOrchestrator, SubmoduleSelector

    orchestrator = SyncOrchestrator(ctx)
    orchestrator.sync_to("git@github.com:Khan/webapp", "master", SubmoduleSelector.all())
"""

from reposync.core.sync.checkout import CheckoutEngine
from reposync.core.sync.fetch import FetchCoordinator
from reposync.core.sync.models import MaterializeResult, SyncResult
from reposync.core.sync.orchestrator import SyncOrchestrator
from reposync.core.sync.submodules import (
    SubmoduleMaterializer,
    SubmoduleRef,
    SubmoduleSelector,
)
from reposync.core.sync.workdir import create_linked_workdir, is_linked_workdir

__all__ = [
    "CheckoutEngine",
    "FetchCoordinator",
    "MaterializeResult",
    "SubmoduleMaterializer",
    "SubmoduleRef",
    "SubmoduleSelector",
    "SyncOrchestrator",
    "SyncResult",
    "create_linked_workdir",
    "is_linked_workdir",
]
