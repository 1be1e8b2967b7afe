"""api.video live stream provisioning.

Two ways to attach restream destinations:

- StreamMode.CREATE (default): a new live stream per run, destinations attached
  at creation time.
- StreamMode.UPDATE: an existing live stream keeps its id and stream key; its
  destination list is merged with the new entries and PATCHed back.
"""

from typing import Any

import httpx
from loguru import logger

from restreamer.app_config import get_app_environ_config
from restreamer.schemas.restream import LiveStreamResult, RestreamDestination
from restreamer.schemas.restream_config import StreamMode
from restreamer.utils.app_errors import (
    AppError,
    ConfigurationIncompleteError,
    ProviderError,
    ProvisioningFailedError,
)

from .restreams import merge_restream_destination


def _problem_message(response: httpx.Response) -> str:
    """api.video errors are problem+json documents with title/detail."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        parts = [str(body[k]) for k in ("title", "detail") if body.get(k)]
        if parts:
            return " - ".join(parts)
    return f"HTTP {response.status_code}"


class StreamProvisioner:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        log=None,
    ):
        cfg = get_app_environ_config()
        self.base_url = (base_url or cfg.APIVIDEO_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else cfg.APIVIDEO_TIMEOUT_SECONDS
        self._transport = transport
        self._log = log or logger.bind(component="apivideo")

    def _build_headers(self, api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    async def _request(
        self,
        method: str,
        path: str,
        api_key: str,
        *,
        json: dict[str, Any] | None = None,
        action: str,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.request(
                    method,
                    url,
                    json=json,
                    headers=self._build_headers(api_key),
                    timeout=self.timeout,
                )
        except httpx.HTTPError as exc:
            self._log.error(f"Failed to {action}: {type(exc).__name__}: {exc}")
            raise ProviderError(f"api.video {action} error: {exc}") from exc

        if response.is_error:
            message = _problem_message(response)
            self._log.error(f"Failed to {action}: {message}")
            raise ProviderError(f"api.video {action} error: {message}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ProvisioningFailedError(f"api.video {action} returned a non-JSON body") from exc
        self._log.debug(f"{action} response: {data}")
        return data

    @staticmethod
    def _to_result(data: dict[str, Any], action: str) -> LiveStreamResult:
        stream_id = data.get("liveStreamId")
        if not stream_id:
            raise ProvisioningFailedError(f"api.video {action} did not return live stream ID")
        return LiveStreamResult(
            id=stream_id,
            name=data.get("name") or "",
            rtmp_url=data.get("rtmpUrl"),
            stream_key=data.get("streamKey"),
            restreams=[RestreamDestination.model_validate(r) for r in data.get("restreams") or []],
        )

    async def create_live_stream(
        self,
        api_key: str,
        name: str,
        restreams: list[RestreamDestination] | None = None,
    ) -> LiveStreamResult:
        """Create a recorded live stream with the given restream destinations.

        Args:
            api_key: api.video API key
            name: Name for the live stream
            restreams: Destinations to attach (omitted from the payload when empty)

        Returns:
            LiveStreamResult with id, rtmp_url and stream_key for the encoder

        Raises:
            ProviderError: If api.video rejects the request or is unreachable
            ProvisioningFailedError: If the response carries no liveStreamId
        """
        payload: dict[str, Any] = {"name": name, "record": True}
        if restreams:
            payload["restreams"] = [r.model_dump() for r in restreams]

        self._log.info(
            f"Creating api.video live stream {name!r} with {len(restreams or [])} restream(s)"
        )
        data = await self._request(
            "POST", "live-streams", api_key, json=payload, action="live stream creation"
        )
        result = self._to_result(data, "live stream creation")
        self._log.info(f"Successfully created api.video live stream: {result.id} ({name})")
        return result

    async def get_live_stream(self, api_key: str, stream_id: str) -> LiveStreamResult:
        data = await self._request(
            "GET", f"live-streams/{stream_id}", api_key, action="live stream fetch"
        )
        return self._to_result(data, "live stream fetch")

    async def update_restreams(
        self,
        api_key: str,
        stream_id: str,
        restreams: list[RestreamDestination],
    ) -> LiveStreamResult:
        """Replace the destination list of an existing live stream."""
        self._log.info(f"Updating api.video live stream {stream_id} with {len(restreams)} restream(s)")
        data = await self._request(
            "PATCH",
            f"live-streams/{stream_id}",
            api_key,
            json={"restreams": [r.model_dump() for r in restreams]},
            action="live stream update",
        )
        return self._to_result(data, "live stream update")

    async def create_or_update_stream(
        self,
        api_key: str,
        name: str,
        restreams: list[RestreamDestination],
        mode: StreamMode = StreamMode.CREATE,
        stream_id: str | None = None,
    ) -> LiveStreamResult:
        """Provision the primary stream according to mode.

        Raises:
            ConfigurationIncompleteError: UPDATE mode without a stream_id
        """
        if mode is StreamMode.CREATE:
            return await self.create_live_stream(api_key, name, restreams)

        if not stream_id:
            raise ConfigurationIncompleteError(
                "Missing required api.video configuration: apivideo_live_stream_id",
                field="apivideo_live_stream_id",
            )

        try:
            current = await self.get_live_stream(api_key, stream_id)
        except AppError:
            self._log.error(f"Could not read current restreams of live stream {stream_id}")
            raise

        merged = list(current.restreams)
        for destination in restreams:
            merged = merge_restream_destination(merged, destination)
        return await self.update_restreams(api_key, stream_id, merged)
