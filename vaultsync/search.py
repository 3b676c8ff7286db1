"""Full-text search over the vault, projected into flat hit lists."""

from __future__ import annotations

import logging

from vaultsync.client import VaultClient
from vaultsync.models import SearchResult, credential_hit_from_wire, folder_hit_from_wire

logger = logging.getLogger(__name__)


class SearchProjector:
    def __init__(self, client: VaultClient) -> None:
        self.client = client

    def search(self, query: str) -> SearchResult:
        """Run one search call.

        Paths are the vault's own (``Path`` for credentials, ``FullPath`` for
        folders); nothing is recomputed locally and no pagination is followed.
        """
        payload = self.client.search(query)
        result = SearchResult(
            credentials=[credential_hit_from_wire(c) for c in payload.get("Credentials") or []],
            folders=[folder_hit_from_wire(g) for g in payload.get("Groups") or []],
        )
        logger.debug(
            "Search %r: %d credentials, %d folders",
            query,
            len(result.credentials),
            len(result.folders),
        )
        return result
