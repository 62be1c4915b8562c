"""Upstream sync: merge upstream releases into the fork."""

from forkctl.sync.errors import SyncError, SyncErrorKind
from forkctl.sync.model import RELEASE_TRAILER, Resolution, SyncReport, SyncStatus
from forkctl.sync.service import UpstreamSyncService
from forkctl.sync.workflows import WorkflowSnapshot

__all__ = [
    "RELEASE_TRAILER",
    "Resolution",
    "SyncError",
    "SyncErrorKind",
    "SyncReport",
    "SyncStatus",
    "UpstreamSyncService",
    "WorkflowSnapshot",
]
