"""
Resource reconcilers — the create/read/update/delete contract per resource kind.

The control flow lives once in ``Reconciler``; subclasses only say which
endpoints to call and how declared fields map onto the wire.

Semantics shared by every kind:
  - create unquotes the id the vault hands back and returns the resource
    rebuilt from the declared input (timestamps are placeholders).
  - read raises NotFoundDrift when the vault answers 404/410: the object was
    deleted out-of-band and the caller must drop it from tracked state.
  - update is a full overwrite (every declared field is sent, no diffing).
    The vault does not echo the object back, so the result is rebuilt from
    the declared input.
  - delete expects 204.

Usage:
    creds = CredentialReconciler(client)
    cred = creds.create(DeclaredCredential(name="db", folder_id=fid, password="s3cret"))
    try:
        cred = creds.read(cred.id)
    except NotFoundDrift:
        state.pop(cred.id)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Generic, TypeVar

from vaultsync.client import VaultClient
from vaultsync.errors import ApiError, NotFoundDrift
from vaultsync.models import (
    Credential,
    DeclaredCredential,
    DeclaredFolder,
    Folder,
    Tag,
    credential_from_wire,
    credential_to_wire,
    folder_from_wire,
    folder_to_wire,
    unquote_or_raw,
)
from vaultsync.tree import resolve_root_id

logger = logging.getLogger(__name__)

D = TypeVar("D")
R = TypeVar("R")


class Reconciler(ABC, Generic[D, R]):
    """Generic CRUD driver. ``D`` is the declared shape, ``R`` the tracked one."""

    kind: str

    def __init__(self, client: VaultClient) -> None:
        self.client = client

    # ─── Kind-specific hooks ─────────────────────────────────────────────

    @abstractmethod
    def _create_remote(self, declared: D) -> str:
        """Call the creation endpoint; return the raw id payload."""

    @abstractmethod
    def _get_remote(self, resource_id: str) -> R:
        """Fetch the primary object. Not-found here means drift."""

    def _complete(self, resource: R) -> R:
        """Follow-up fetches after the primary read. Not-found here is an error."""
        return resource

    @abstractmethod
    def _update_remote(self, resource_id: str, declared: D) -> None: ...

    @abstractmethod
    def _delete_remote(self, resource_id: str) -> None: ...

    @abstractmethod
    def _from_declared(self, resource_id: str, declared: D) -> R:
        """Rebuild the tracked resource from declared input."""

    # ─── Lifecycle ───────────────────────────────────────────────────────

    def create(self, declared: D) -> R:
        resource_id = unquote_or_raw(self._create_remote(declared))
        logger.info("Created %s %s", self.kind, resource_id)
        return self._from_declared(resource_id, declared)

    def read(self, resource_id: str) -> R:
        try:
            resource = self._get_remote(resource_id)
        except ApiError as e:
            if e.is_not_found:
                logger.info("%s %s no longer exists; dropping from state", self.kind, resource_id)
                raise NotFoundDrift(self.kind, resource_id) from e
            raise
        logger.debug("Read %s %s", self.kind, resource_id)
        return self._complete(resource)

    def update(self, resource_id: str, declared: D) -> R:
        self._update_remote(resource_id, declared)
        logger.info("Updated %s %s", self.kind, resource_id)
        return self._from_declared(resource_id, declared)

    def delete(self, resource_id: str) -> None:
        self._delete_remote(resource_id)
        logger.info("Deleted %s %s", self.kind, resource_id)

    def adopt(self, resource_id: str) -> R:
        """Bring an existing remote object under management by id.

        Unlike ``read``, a missing object is an ApiError: there is nothing to
        adopt.
        """
        resource = self._complete(self._get_remote(resource_id))
        logger.info("Adopted %s %s", self.kind, resource_id)
        return resource


class CredentialReconciler(Reconciler[DeclaredCredential, Credential]):
    kind = "credential"

    def _create_remote(self, declared: DeclaredCredential) -> str:
        return self.client.create_credential(credential_to_wire(declared))

    def _get_remote(self, resource_id: str) -> Credential:
        return credential_from_wire(self.client.get_credential(resource_id))

    def _complete(self, resource: Credential) -> Credential:
        # The main payload never carries the secret.
        secret = self.client.get_credential_password(resource.id)
        return replace(resource, password=unquote_or_raw(secret))

    def _update_remote(self, resource_id: str, declared: DeclaredCredential) -> None:
        self.client.update_credential(resource_id, credential_to_wire(declared))

    def _delete_remote(self, resource_id: str) -> None:
        self.client.delete_credential(resource_id)

    def _from_declared(self, resource_id: str, declared: DeclaredCredential) -> Credential:
        return Credential(
            id=resource_id,
            name=declared.name,
            folder_id=declared.folder_id,
            username=declared.username,
            password=declared.password,
            url=declared.url,
            notes=declared.notes,
            tags=[Tag(name=n) for n in declared.tags],
        )


class FolderReconciler(Reconciler[DeclaredFolder, Folder]):
    """Folder attributes only.

    ``read`` returns the folder with its direct credentials but no child
    folders; use TreeMaterializer for a full subtree.
    """

    kind = "folder"

    def __init__(self, client: VaultClient) -> None:
        super().__init__(client)
        self._root_id: str | None = None

    def _parent_id(self, declared: DeclaredFolder) -> str:
        if declared.parent_id:
            return declared.parent_id
        if self._root_id is None:
            self._root_id = resolve_root_id(self.client)
        return self._root_id

    def _create_remote(self, declared: DeclaredFolder) -> str:
        return self.client.create_folder(folder_to_wire(declared, self._parent_id(declared)))

    def _get_remote(self, resource_id: str) -> Folder:
        return folder_from_wire(self.client.get_folder(resource_id))

    def _update_remote(self, resource_id: str, declared: DeclaredFolder) -> None:
        self.client.update_folder(resource_id, folder_to_wire(declared, self._parent_id(declared)))

    def delete(self, resource_id: str) -> None:
        """Delete the folder.

        The vault removes every descendant folder and credential along with
        it. Tracked children must be dropped by the caller; reading them
        afterwards raises NotFoundDrift.
        """
        super().delete(resource_id)

    def _delete_remote(self, resource_id: str) -> None:
        self.client.delete_folder(resource_id)

    def _from_declared(self, resource_id: str, declared: DeclaredFolder) -> Folder:
        return Folder(
            id=resource_id,
            name=declared.name,
            parent_id=self._parent_id(declared),
            notes=declared.notes,
        )
