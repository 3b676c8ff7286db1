"""
vaultsync — reconcile declared folders and credentials against a Pleasant
Password Server vault.

Public API:
    open_session(declared)            → authenticated Session (PPS_* env fallback)
    session.client()                  → VaultClient (context manager)
    CredentialReconciler(client)      → create / read / update / delete / adopt
    FolderReconciler(client)          → same, folder delete cascades server-side
    TreeMaterializer(client)          → root_id(), materialize(folder_id)
    SearchProjector(client)           → search(query)
"""

from __future__ import annotations

from vaultsync.client import VaultClient
from vaultsync.config import DeclaredConfig, VaultConfig, load_declared_config, resolve_config
from vaultsync.errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    NotFoundDrift,
    VaultSyncError,
)
from vaultsync.models import (
    NOT_IMPLEMENTED,
    Credential,
    CredentialSearchHit,
    DeclaredCredential,
    DeclaredFolder,
    Folder,
    FolderSearchHit,
    SearchResult,
    Tag,
)
from vaultsync.reconciler import CredentialReconciler, FolderReconciler, Reconciler
from vaultsync.search import SearchProjector
from vaultsync.session import Session, authenticate, open_session
from vaultsync.tree import TreeMaterializer

__version__ = "0.1.0"

__all__ = [
    "NOT_IMPLEMENTED",
    "ApiError",
    "AuthenticationError",
    "ConfigurationError",
    "Credential",
    "CredentialReconciler",
    "CredentialSearchHit",
    "DeclaredConfig",
    "DeclaredCredential",
    "DeclaredFolder",
    "Folder",
    "FolderReconciler",
    "FolderSearchHit",
    "NotFoundDrift",
    "Reconciler",
    "SearchProjector",
    "SearchResult",
    "Session",
    "Tag",
    "TreeMaterializer",
    "VaultClient",
    "VaultConfig",
    "VaultSyncError",
    "authenticate",
    "load_declared_config",
    "open_session",
    "resolve_config",
]
