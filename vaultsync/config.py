"""
Connection configuration for vaultsync.

Declared values (from the orchestration host or a YAML file) win; anything
left unset falls back to one environment variable per field:

    PPS_SERVER_URL      server_url
    PPS_USERNAME        username
    PPS_PASSWORD        password
    PPS_ALLOW_INSECURE  allow_insecure (boolean)

Usage:
    from vaultsync.config import DeclaredConfig, resolve_config
    cfg = resolve_config(DeclaredConfig(username="svc-terraform"))
    print(cfg.server_url)    # https://vault.example.com
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml  # type: ignore[import-untyped]

from vaultsync.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_SERVER_URL = "PPS_SERVER_URL"
ENV_USERNAME = "PPS_USERNAME"
ENV_PASSWORD = "PPS_PASSWORD"
ENV_ALLOW_INSECURE = "PPS_ALLOW_INSECURE"

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def parse_bool(value: str) -> bool:
    """Parse a boolean the way the vault tooling always has (1/t/true/...)."""
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean {value!r}")


def normalize_server_url(url: str) -> str:
    """Default the scheme to https and drop trailing slashes."""
    url = url.strip().rstrip("/")
    if url and "://" not in url:
        url = f"https://{url}"
    return url


@dataclass(frozen=True)
class DeclaredConfig:
    """Values as declared by the operator. ``None`` means "not declared"."""

    server_url: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    otp_code: str | None = field(default=None, repr=False)
    otp_provider: str | None = None
    allow_insecure: bool | None = None


@dataclass(frozen=True)
class VaultConfig:
    """Fully resolved connection settings for one reconciliation run."""

    server_url: str
    username: str
    password: str = field(repr=False)
    otp_code: str | None = field(default=None, repr=False)
    otp_provider: str | None = None
    allow_insecure: bool = False

    @property
    def verify(self) -> bool:
        """Whether TLS certificates are validated for this session."""
        return not self.allow_insecure

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> VaultConfig:
        return resolve_config(DeclaredConfig(), environ)


def resolve_config(
    declared: DeclaredConfig,
    environ: Mapping[str, str] | None = None,
) -> VaultConfig:
    """Merge declared values with environment fallbacks and validate.

    Raises:
        ConfigurationError: naming the first required field that is still
            empty, or the insecure flag when its env value is not a boolean.
    """
    env = os.environ if environ is None else environ

    def _fallback(value: str | None, var: str) -> str:
        if value is not None:
            return value
        return env.get(var, "")

    server_url = normalize_server_url(_fallback(declared.server_url, ENV_SERVER_URL))
    username = _fallback(declared.username, ENV_USERNAME)
    password = _fallback(declared.password, ENV_PASSWORD)

    allow_insecure = declared.allow_insecure
    if allow_insecure is None:
        raw = env.get(ENV_ALLOW_INSECURE, "")
        if raw:
            try:
                allow_insecure = parse_bool(raw)
            except ValueError as e:
                raise ConfigurationError(
                    "allow_insecure", f"{ENV_ALLOW_INSECURE} must be a boolean, got {raw!r}"
                ) from e

    for name, value, var in (
        ("server_url", server_url, ENV_SERVER_URL),
        ("username", username, ENV_USERNAME),
        ("password", password, ENV_PASSWORD),
    ):
        if not value:
            raise ConfigurationError(
                name,
                f"missing or empty value. Set it in the configuration or use the {var} "
                "environment variable.",
            )

    if declared.otp_code and not declared.otp_provider:
        raise ConfigurationError("otp_provider", "required when otp_code is set")

    return VaultConfig(
        server_url=server_url,
        username=username,
        password=password,
        otp_code=declared.otp_code or None,
        otp_provider=declared.otp_provider or None,
        allow_insecure=bool(allow_insecure),
    )


def load_declared_config(path: Path) -> DeclaredConfig:
    """Load declared connection values from a YAML file.

    Missing keys stay undeclared so environment fallbacks still apply.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError("config", f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError("config", f"invalid YAML in {path}: {e}") from e

    if data is None:
        return DeclaredConfig()
    if not isinstance(data, dict):
        raise ConfigurationError("config", f"{path} must contain a mapping")

    known = {f.name for f in fields(DeclaredConfig)}
    for key in data:
        if key not in known:
            logger.warning("Ignoring unknown config key %r in %s", key, path)

    allow_insecure = data.get("allow_insecure")
    if isinstance(allow_insecure, str):
        try:
            allow_insecure = parse_bool(allow_insecure)
        except ValueError as e:
            raise ConfigurationError("allow_insecure", str(e)) from e
    elif allow_insecure is not None and not isinstance(allow_insecure, bool):
        raise ConfigurationError("allow_insecure", f"must be a boolean, got {allow_insecure!r}")

    def _str(key: str) -> str | None:
        value = data.get(key)
        return None if value is None else str(value)

    return DeclaredConfig(
        server_url=_str("server_url"),
        username=_str("username"),
        password=_str("password"),
        otp_code=_str("otp_code"),
        otp_provider=_str("otp_provider"),
        allow_insecure=allow_insecure,
    )
