"""Tests for api.video live stream provisioning."""

import json

import httpx
import pytest

from restreamer.schemas.restream import RestreamDestination
from restreamer.schemas.restream_config import StreamMode
from restreamer.services.apivideo.apivideo_client import StreamProvisioner
from restreamer.utils.app_errors import (
    ConfigurationIncompleteError,
    ProviderError,
    ProvisioningFailedError,
)
from tests.fixtures.provider_stubs import APIVIDEO_BASE_URL, ProviderStub

FACEBOOK = RestreamDestination(
    label="Facebook Live", server_url="rtmps://live-api-s.facebook.com:443/", stream_key="FB-NEW"
)
YOUTUBE = RestreamDestination(
    label="Youtube Live", server_url="rtmp://a.rtmp.youtube.com/live2", stream_key="yt-key"
)


def live_stream(stream_id: str = "li123", restreams: list[dict] | None = None) -> dict:
    return {
        "liveStreamId": stream_id,
        "name": "Live - 01.oktober.25",
        "streamKey": "primary-key",
        "rtmpUrl": "rtmp://broadcast.api.video/s",
        "record": True,
        "restreams": restreams or [],
    }


def body_of(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def provisioner(apivideo_stub: ProviderStub) -> StreamProvisioner:
    return StreamProvisioner(base_url=APIVIDEO_BASE_URL, transport=apivideo_stub.transport)


class TestCreateLiveStream:
    async def test_payload_and_result(self, apivideo_stub, provisioner):
        # Arrange
        apivideo_stub.on(
            "POST",
            "/live-streams",
            httpx.Response(201, json=live_stream(restreams=[FACEBOOK.model_dump()])),
        )

        # Act
        result = await provisioner.create_live_stream("api-key", "Live - 01.oktober.25", [FACEBOOK])

        # Assert
        request = apivideo_stub.requests[0]
        assert request.headers["Authorization"] == "Bearer api-key"
        assert body_of(request) == {
            "name": "Live - 01.oktober.25",
            "record": True,
            "restreams": [
                {
                    "name": "Facebook Live",
                    "serverUrl": "rtmps://live-api-s.facebook.com:443/",
                    "streamKey": "FB-NEW",
                }
            ],
        }
        assert result.id == "li123"
        assert result.rtmp_url == "rtmp://broadcast.api.video/s"
        assert result.stream_key == "primary-key"
        assert result.restreams == [FACEBOOK]

    async def test_empty_restreams_are_omitted(self, apivideo_stub, provisioner):
        apivideo_stub.on("POST", "/live-streams", httpx.Response(201, json=live_stream()))

        await provisioner.create_live_stream("api-key", "Live", [])

        assert "restreams" not in body_of(apivideo_stub.requests[0])

    async def test_missing_live_stream_id(self, apivideo_stub, provisioner):
        apivideo_stub.on("POST", "/live-streams", httpx.Response(201, json={"name": "Live"}))

        with pytest.raises(ProvisioningFailedError) as exc_info:
            await provisioner.create_live_stream("api-key", "Live")

        assert "did not return live stream ID" in exc_info.value.errmesg

    async def test_problem_details_become_provider_error(self, apivideo_stub, provisioner):
        apivideo_stub.on(
            "POST",
            "/live-streams",
            httpx.Response(
                401,
                json={"type": "https://docs.api.video/reference/authentication-invalid", "title": "Unauthorized", "status": 401},
            ),
        )

        with pytest.raises(ProviderError) as exc_info:
            await provisioner.create_live_stream("bad-key", "Live")

        assert exc_info.value.errmesg == "api.video live stream creation error: Unauthorized"

    async def test_transport_error(self, apivideo_stub, provisioner):
        apivideo_stub.on("POST", "/live-streams", httpx.ReadTimeout("read timed out"))

        with pytest.raises(ProviderError):
            await provisioner.create_live_stream("api-key", "Live")


class TestCreateOrUpdateStream:
    async def test_create_mode(self, apivideo_stub, provisioner):
        apivideo_stub.on("POST", "/live-streams", httpx.Response(201, json=live_stream("li-new")))

        result = await provisioner.create_or_update_stream("api-key", "Live", [YOUTUBE])

        assert result.id == "li-new"
        assert apivideo_stub.count("POST", "/live-streams") == 1

    async def test_update_mode_requires_stream_id(self, apivideo_stub, provisioner):
        with pytest.raises(ConfigurationIncompleteError) as exc_info:
            await provisioner.create_or_update_stream(
                "api-key", "Live", [FACEBOOK], mode=StreamMode.UPDATE
            )

        assert exc_info.value.field == "apivideo_live_stream_id"
        assert apivideo_stub.requests == []

    async def test_update_mode_merges_existing_destinations(self, apivideo_stub, provisioner):
        # Arrange
        stale_facebook = {"name": "Facebook Live", "serverUrl": "rtmps://old/", "streamKey": "FB-OLD"}
        other = {"name": "Twitch", "serverUrl": "rtmp://live.twitch.tv/app/", "streamKey": "tw"}
        apivideo_stub.on(
            "GET", "/live-streams/li123", httpx.Response(200, json=live_stream(restreams=[stale_facebook, other]))
        )
        apivideo_stub.on(
            "PATCH",
            "/live-streams/li123",
            lambda request: httpx.Response(200, json=live_stream(restreams=body_of(request)["restreams"])),
        )

        # Act
        result = await provisioner.create_or_update_stream(
            "api-key", "Live", [FACEBOOK], mode=StreamMode.UPDATE, stream_id="li123"
        )

        # Assert
        patch_body = body_of(apivideo_stub.calls("PATCH", "/live-streams/li123")[0])
        assert patch_body == {"restreams": [other, FACEBOOK.model_dump()]}
        assert result.id == "li123"
        assert [r.stream_key for r in result.restreams] == ["tw", "FB-NEW"]
        assert apivideo_stub.count("POST", "/live-streams") == 0

    async def test_update_mode_fetch_failure(self, apivideo_stub, provisioner):
        apivideo_stub.on(
            "GET", "/live-streams/missing", httpx.Response(404, json={"title": "Not Found", "detail": "missing"})
        )

        with pytest.raises(ProviderError) as exc_info:
            await provisioner.create_or_update_stream(
                "api-key", "Live", [FACEBOOK], mode=StreamMode.UPDATE, stream_id="missing"
            )

        assert "Not Found - missing" in exc_info.value.errmesg
        assert apivideo_stub.count("PATCH", "/live-streams/missing") == 0
