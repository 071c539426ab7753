"""Small httpx client for OAuth token endpoints and profile lookups."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, cast

import httpx

from ..core.config import settings
from .platforms import PlatformDefinition

logger = logging.getLogger(__name__)

# Statuses that mean the grant itself is dead and retrying will not help
REJECTED_GRANT_STATUSES = frozenset({400, 401, 403})


class OAuthError(RuntimeError):
    """Raised when a platform responds with an error or an unusable payload."""

    def __init__(self, message: str, status_code: Optional[int] = None, *, error_body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_body = error_body

    @property
    def grant_rejected(self) -> bool:
        return self.status_code in REJECTED_GRANT_STATUSES


class OAuthClient:
    """
    Talks to one platform's token and profile endpoints.

    ``transport`` lets tests plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        platform: PlatformDefinition,
        *,
        client_id: str,
        client_secret: str,
        timeout: Optional[float] = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.platform = platform
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout or settings.integration_http_timeout_seconds
        self._transport = transport

    def exchange_code(self, code: str, redirect_uri: str, *, code_verifier: Optional[str] = None) -> Dict[str, Any]:
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            self.platform.client_id_param: self._client_id,
            "client_secret": self._client_secret,
        }
        if code_verifier:
            form["code_verifier"] = code_verifier
        return self._token_request(form)

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        return self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                self.platform.client_id_param: self._client_id,
                "client_secret": self._client_secret,
            }
        )

    def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        if not self.platform.profile_url:
            return {}
        return self.get_json(self.platform.profile_url, access_token)

    def get_json(self, url: str, access_token: str, *, params: Dict[str, Any] | None = None) -> Dict[str, Any]:
        return self._request("GET", url, headers={"Authorization": f"Bearer {access_token}"}, params=params)

    def _token_request(self, form: Dict[str, str]) -> Dict[str, Any]:
        if not self.platform.token_url:
            raise OAuthError(f"{self.platform.name} has no token endpoint")
        payload = self._request("POST", self.platform.token_url, data=form)
        # TikTok wraps the token under "data"
        if "access_token" not in payload and isinstance(payload.get("data"), dict):
            payload = cast(Dict[str, Any], payload["data"])
        if not payload.get("access_token"):
            raise OAuthError(f"{self.platform.name} token response has no access_token", error_body=payload)
        return payload

    def _request(
        self,
        method: str,
        url: str,
        *,
        data: Dict[str, str] | None = None,
        params: Dict[str, Any] | None = None,
        headers: Dict[str, str] | None = None,
    ) -> Dict[str, Any]:
        with httpx.Client(
            timeout=self._timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        ) as client:
            try:
                response = client.request(method, url, data=data, params=params, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                try:
                    body: Any = exc.response.json()
                except json.JSONDecodeError:
                    body = exc.response.text
                logger.warning("[OAUTH] %s %s %s returned %s", self.platform.name, method, url, status)
                raise OAuthError(f"{self.platform.name} API error {status}", status, error_body=body) from exc
            except httpx.HTTPError as exc:
                logger.warning("[OAUTH] %s request failed: %s", self.platform.name, exc)
                raise OAuthError(f"{self.platform.name} request failed: {exc}") from exc
        try:
            return cast(Dict[str, Any], response.json())
        except json.JSONDecodeError as exc:
            raise OAuthError(f"{self.platform.name} returned invalid JSON", response.status_code) from exc
