"""
reposync - workspace synchronization against shared git mirrors.

Brings ephemeral build workspaces to known revisions, merges trunk into
deploy branches, and pushes results back, with every network operation
serialized on one lock per shared root.
"""

__version__ = "0.4.0"

# Re-export core models for convenience
from reposync.core.config.models import ReposyncConfig

__all__ = ["ReposyncConfig", "__version__"]
