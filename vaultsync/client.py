"""
Pleasant Password Server v6 REST client.

Thin, synchronous wrapper over httpx.Client. Each method hits exactly one
endpoint, checks the one status code that endpoint answers with on success,
and returns the parsed payload. Anything else becomes ApiError; the token
endpoint raises AuthenticationError instead.

String payloads (new ids, the root id, secrets) are returned raw. The vault
sometimes wraps them in quotes; callers unquote with
``vaultsync.models.unquote_or_raw``.

Usage:
    with VaultClient("https://vault.example.com", token) as client:
        folder = client.get_folder(folder_id)
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from vaultsync.errors import ApiError, AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/OAuth2/Token"
API_PREFIX = "/api/v6/rest"


def _id(value: str) -> str:
    return quote(value, safe="")


class VaultClient:
    """One HTTP connection pool bound to one vault, optionally authenticated."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        verify: bool = True,
        timeout: float | httpx.Timeout | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        kwargs: dict[str, Any] = {
            "base_url": self.base_url,
            "headers": headers,
            "verify": verify,
        }
        if timeout is not None:
            kwargs["timeout"] = timeout
        if transport is not None:
            kwargs["transport"] = transport
        self._client = httpx.Client(**kwargs)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> VaultClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ─── Plumbing ────────────────────────────────────────────────────────

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        expected: int,
        json: Any = None,
    ) -> httpx.Response:
        try:
            resp = self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise ApiError(operation, None, str(e)) from e
        if resp.status_code != expected:
            raise ApiError(operation, resp.status_code, resp.text)
        return resp

    @staticmethod
    def _json_object(operation: str, resp: httpx.Response) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            raise ApiError(operation, resp.status_code, f"invalid JSON: {resp.text}") from e
        if not isinstance(data, dict):
            raise ApiError(operation, resp.status_code, f"expected a JSON object: {resp.text}")
        return data

    # ─── Authentication ─────────────────────────────────────────────────

    def request_token(
        self,
        username: str,
        password: str,
        *,
        otp_code: str | None = None,
        otp_provider: str | None = None,
    ) -> str:
        """POST /OAuth2/Token with a password grant. Returns the bearer token."""
        headers = {}
        if otp_code:
            headers["X-Pleasant-OTP"] = otp_code
            headers["X-Pleasant-OTP-Provider"] = otp_provider or ""
        form = {"grant_type": "password", "username": username, "password": password}
        try:
            resp = self._client.post(TOKEN_PATH, data=form, headers=headers)
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Auth request failed: {e}") from e

        if resp.status_code != 200:
            raise AuthenticationError(
                "Auth request failed", status=resp.status_code, body=resp.text
            )
        try:
            token = resp.json().get("access_token")
        except (ValueError, AttributeError) as e:
            raise AuthenticationError(
                "Auth response is not a token object", status=resp.status_code, body=resp.text
            ) from e
        if not token:
            raise AuthenticationError(
                "Auth response carried no access_token", status=resp.status_code, body=resp.text
            )
        return str(token)

    # ─── Folders ─────────────────────────────────────────────────────────

    def get_folder_root(self) -> str:
        resp = self._request("GetFolderRoot", "GET", f"{API_PREFIX}/folders/root", expected=200)
        return resp.text

    def get_folder(self, folder_id: str) -> dict[str, Any]:
        resp = self._request(
            "GetFolder", "GET", f"{API_PREFIX}/folders/{_id(folder_id)}", expected=200
        )
        return self._json_object("GetFolder", resp)

    def create_folder(self, body: dict[str, Any]) -> str:
        resp = self._request("CreateFolder", "POST", f"{API_PREFIX}/folders", expected=200, json=body)
        return resp.text

    def update_folder(self, folder_id: str, body: dict[str, Any]) -> None:
        self._request(
            "UpdateFolder",
            "PATCH",
            f"{API_PREFIX}/folders/{_id(folder_id)}",
            expected=204,
            json=body,
        )

    def delete_folder(self, folder_id: str) -> None:
        self._request(
            "DeleteFolder", "DELETE", f"{API_PREFIX}/folders/{_id(folder_id)}", expected=204
        )

    # ─── Credentials ─────────────────────────────────────────────────────

    def get_credential(self, credential_id: str) -> dict[str, Any]:
        resp = self._request(
            "GetCredential", "GET", f"{API_PREFIX}/credentials/{_id(credential_id)}", expected=200
        )
        return self._json_object("GetCredential", resp)

    def get_credential_password(self, credential_id: str) -> str:
        resp = self._request(
            "GetCredentialSecret",
            "GET",
            f"{API_PREFIX}/credentials/{_id(credential_id)}/password",
            expected=200,
        )
        return resp.text

    def create_credential(self, body: dict[str, Any]) -> str:
        resp = self._request(
            "CreateCredential", "POST", f"{API_PREFIX}/credentials", expected=200, json=body
        )
        return resp.text

    def update_credential(self, credential_id: str, body: dict[str, Any]) -> None:
        self._request(
            "UpdateCredential",
            "PATCH",
            f"{API_PREFIX}/credentials/{_id(credential_id)}",
            expected=204,
            json=body,
        )

    def delete_credential(self, credential_id: str) -> None:
        self._request(
            "DeleteCredential",
            "DELETE",
            f"{API_PREFIX}/credentials/{_id(credential_id)}",
            expected=204,
        )

    # ─── Search ──────────────────────────────────────────────────────────

    def search(self, query: str) -> dict[str, Any]:
        resp = self._request(
            "Search", "POST", f"{API_PREFIX}/search", expected=200, json={"Search": query}
        )
        return self._json_object("Search", resp)
