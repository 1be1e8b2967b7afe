"""Facebook Graph API wire calls used by the token and broadcast services.

Each call opens its own httpx.AsyncClient with an explicit timeout. Non-2xx
responses raise GraphApiError with the provider's error code and message;
transport failures surface as httpx.HTTPError.
"""

from typing import Any

import httpx
from loguru import logger

from restreamer.app_config import get_app_environ_config

# Graph error codes the token services classify
GRAPH_CODE_INVALID_TOKEN = 190
GRAPH_CODE_PERMISSION = 200


class GraphApiError(Exception):
    """Error payload returned by the Graph API ({"error": {"code", "message", ...}})."""

    def __init__(self, message: str, *, code: int | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    @property
    def is_invalid_token(self) -> bool:
        return self.code == GRAPH_CODE_INVALID_TOKEN

    @property
    def is_permission_error(self) -> bool:
        return self.code == GRAPH_CODE_PERMISSION

    @classmethod
    def from_response(cls, response: httpx.Response) -> "GraphApiError":
        code: int | None = None
        message = f"HTTP {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error = body["error"]
            code = error.get("code")
            message = error.get("message") or message
        return cls(message, code=code, status_code=response.status_code)


class GraphClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_version: str | None = None,
        timeout: float | None = None,
        validate_timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        cfg = get_app_environ_config()
        self.base_url = (base_url or cfg.GRAPH_API_BASE_URL).rstrip("/")
        self.api_version = api_version or cfg.GRAPH_API_VERSION
        self.timeout = timeout if timeout is not None else cfg.GRAPH_TIMEOUT_SECONDS
        self.validate_timeout = (
            validate_timeout if validate_timeout is not None else cfg.GRAPH_VALIDATE_TIMEOUT_SECONDS
        )
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        *,
        timeout: float,
        params: dict[str, str] | None = None,
        data: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.request(method, url, params=params, data=data, timeout=timeout)
        if response.is_error:
            raise GraphApiError.from_response(response)
        body = response.json()
        if not isinstance(body, dict):
            raise GraphApiError(f"Unexpected response body from {path}", status_code=response.status_code)
        return body

    async def get_me(self, access_token: str) -> dict[str, Any]:
        """Identity read, used as the token liveness check."""
        return await self._request(
            "GET", "me", params={"access_token": access_token}, timeout=self.validate_timeout
        )

    async def exchange_token(
        self, short_lived_token: str, client_id: str, client_secret: str
    ) -> dict[str, Any]:
        """Exchange a short-lived user token for a long-lived one."""
        return await self._request(
            "GET",
            "oauth/access_token",
            params={
                "grant_type": "fb_exchange_token",
                "client_id": client_id,
                "client_secret": client_secret,
                "fb_exchange_token": short_lived_token,
            },
            timeout=self.timeout,
        )

    async def get_accounts(self, access_token: str) -> dict[str, Any]:
        """Pages owned by the user, each with its own page access token."""
        return await self._request(
            "GET", "me/accounts", params={"access_token": access_token}, timeout=self.timeout
        )

    async def create_live_video(
        self, page_id: str, access_token: str, title: str, description: str
    ) -> dict[str, Any]:
        logger.debug(f"POST {self.api_version}/{page_id}/live_videos title={title!r}")
        return await self._request(
            "POST",
            f"{self.api_version}/{page_id}/live_videos",
            data={"title": title, "description": description, "access_token": access_token},
            timeout=self.timeout,
        )
