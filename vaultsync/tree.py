"""
Folder tree materialization.

Builds one Folder holding its entire subtree. The vault's folder payload
lists child folders by reference; each child is fetched by id, one at a
time, in the order the vault reports them. A tree with N descendant folders
therefore costs exactly N + 1 folder fetches and no credential fetches,
since credentials come embedded in their folder.

There is no depth limit and no cycle check: the vault guarantees a tree.
Any ApiError aborts the whole materialization; no partial tree is returned.

Usage:
    tree = TreeMaterializer(client).materialize_root()
    for path, folder in tree.walk():
        print(path, len(folder.credentials))
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from vaultsync.client import VaultClient
from vaultsync.models import Folder, child_ids_from_wire, folder_from_wire, unquote_or_raw

logger = logging.getLogger(__name__)


def resolve_root_id(client: VaultClient) -> str:
    """Id of the vault's well-known root folder."""
    return unquote_or_raw(client.get_folder_root()).strip()


class TreeMaterializer:
    def __init__(self, client: VaultClient) -> None:
        self.client = client

    def root_id(self) -> str:
        return resolve_root_id(self.client)

    def _fetch(self, folder_id: str) -> tuple[Folder, Iterator[str]]:
        payload = self.client.get_folder(folder_id)
        folder = folder_from_wire(payload)
        child_ids = child_ids_from_wire(payload)
        logger.debug(
            "Fetched folder %s (%d credentials, %d children)",
            folder.id or folder_id,
            len(folder.credentials),
            len(child_ids),
        )
        return folder, iter(child_ids)

    def materialize(self, folder_id: str) -> Folder:
        """Fetch ``folder_id`` and every descendant into one snapshot.

        Descent is depth-first with an explicit stack of
        ``(folder, pending child ids)`` frames, so depth is bounded only by
        memory.
        """
        root, pending = self._fetch(folder_id)
        stack = [(root, pending)]
        while stack:
            parent, pending = stack[-1]
            child_id = next(pending, None)
            if child_id is None:
                stack.pop()
                continue
            child, grandchildren = self._fetch(child_id)
            parent.children.append(child)
            stack.append((child, grandchildren))
        return root

    def materialize_root(self) -> Folder:
        return self.materialize(self.root_id())
