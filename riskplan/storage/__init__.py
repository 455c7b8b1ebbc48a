"""Workspace persistence (S3/MinIO or local filesystem)."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional, Protocol

from loguru import logger

from riskplan.exceptions import ConfigurationError
from riskplan.model.schema import SerializedWorkspace
from riskplan.model.workspace import WorkspaceState, deserialize_workspace, serialize_workspace

from .local import LocalWorkspaceStore
from .s3 import S3WorkspaceStore

if TYPE_CHECKING:
    from riskplan.settings import StorageSettings


class WorkspaceStore(Protocol):
    def save(self, serialized: SerializedWorkspace) -> str:  # returns uri
        ...

    def load(self) -> Optional[SerializedWorkspace]:  # None when nothing was saved yet
        ...


def store_from_settings(storage: StorageSettings) -> WorkspaceStore:
    """Build the configured store (``local`` or ``s3``)."""
    if storage.backend == "s3":
        if not storage.bucket:
            raise ConfigurationError("storage.bucket is required for the s3 backend", {"backend": "s3"})
        return S3WorkspaceStore(storage.bucket, prefix=storage.prefix, region=storage.region, key=storage.key)
    return LocalWorkspaceStore(storage.root, filename=storage.key)


def save_workspace(store: WorkspaceStore, workspace: WorkspaceState) -> str:
    serialized = serialize_workspace(workspace)
    uri = store.save(serialized)
    logger.info("Saved workspace to {} ({})", uri, workspace)
    return uri


def load_workspace(store: WorkspaceStore, *, strict: bool = True) -> WorkspaceState:
    """Load the stored workspace, or an empty one when the store is empty."""
    serialized = store.load()
    if serialized is None:
        logger.info("No stored workspace found, starting empty")
        return WorkspaceState()
    return deserialize_workspace(serialized, strict=strict)


async def save_workspace_async(store: WorkspaceStore, workspace: WorkspaceState) -> str:
    # Serialize on the caller's side; the worker thread only sees the snapshot
    serialized = serialize_workspace(workspace)
    return await asyncio.to_thread(store.save, serialized)


async def load_workspace_async(store: WorkspaceStore, *, strict: bool = True) -> WorkspaceState:
    serialized = await asyncio.to_thread(store.load)
    if serialized is None:
        return WorkspaceState()
    return deserialize_workspace(serialized, strict=strict)


__all__ = [
    "WorkspaceStore",
    "LocalWorkspaceStore",
    "S3WorkspaceStore",
    "store_from_settings",
    "save_workspace",
    "load_workspace",
    "save_workspace_async",
    "load_workspace_async",
]
