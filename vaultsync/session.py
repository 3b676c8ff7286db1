"""
Session bootstrap — one authenticated context per reconciliation run.

TLS trust is a property of each Session rather than of the process: an
insecure session only disables certificate checks on the httpx clients it
creates, so sessions with different trust settings can coexist.

Usage:
    from vaultsync.session import open_session
    session = open_session()            # everything from PPS_* env vars
    with session.client() as client:
        root = client.get_folder_root()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx

from vaultsync.client import VaultClient
from vaultsync.config import DeclaredConfig, VaultConfig, resolve_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Authenticated, immutable handle on the vault."""

    base_url: str
    token: str = field(repr=False)
    verify: bool = True

    def client(
        self,
        *,
        timeout: float | httpx.Timeout | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> VaultClient:
        """Build an authenticated client. Close it (or use ``with``) when done."""
        return VaultClient(
            self.base_url,
            self.token,
            verify=self.verify,
            timeout=timeout,
            transport=transport,
        )


def authenticate(
    cfg: VaultConfig,
    *,
    timeout: float | httpx.Timeout | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Session:
    """Run the single password-grant call and wrap the token in a Session.

    Raises AuthenticationError straight away on rejection; there is no retry.
    """
    if cfg.allow_insecure:
        logger.warning("TLS certificate verification is disabled for %s", cfg.server_url)

    with VaultClient(
        cfg.server_url, verify=cfg.verify, timeout=timeout, transport=transport
    ) as client:
        token = client.request_token(
            cfg.username,
            cfg.password,
            otp_code=cfg.otp_code,
            otp_provider=cfg.otp_provider,
        )

    logger.info("Authenticated to %s as %s", cfg.server_url, cfg.username)
    return Session(base_url=cfg.server_url, token=token, verify=cfg.verify)


def open_session(
    declared: DeclaredConfig | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    timeout: float | httpx.Timeout | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Session:
    """Resolve config (declared first, then PPS_* env vars) and log in."""
    cfg = resolve_config(declared or DeclaredConfig(), environ)
    return authenticate(cfg, timeout=timeout, transport=transport)
