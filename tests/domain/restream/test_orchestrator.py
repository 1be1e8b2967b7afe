"""Tests for RestreamOrchestrator provisioning runs."""

import json
from datetime import date, timedelta
from unittest.mock import MagicMock

import httpx
import pytest

from restreamer.domain.restream.orchestrator import RestreamOrchestrator
from restreamer.schemas import OperationStatus, RestreamConfig, StreamMode
from restreamer.schemas.tokens import AccountToken
from restreamer.services.apivideo.apivideo_client import StreamProvisioner
from restreamer.services.graph.graph_client import GraphClient
from restreamer.services.graph.token_validator import ValidationPolicy
from restreamer.utils.app_errors import AppError
from tests.fixtures.provider_stubs import (
    APIVIDEO_BASE_URL,
    GRAPH_BASE_URL,
    ProviderStub,
    graph_error,
)

PAGE_ID = "111"
LIVE_VIDEOS = f"/v18.0/{PAGE_ID}/live_videos"
SECURE_URL = "rtmps://live-api-s.facebook.com:443/rtmp/FB-KEY?s_bl=1"


def make_config(**overrides) -> RestreamConfig:
    values = dict(
        apivideo_api_key="api-key",
        enable_facebook_restream=True,
        enable_youtube_restream=True,
        fb_page_id=PAGE_ID,
        fb_user_token="user-token",
        fb_app_id="app-id",
        fb_app_secret="app-secret",
        yt_rtmp_url="rtmp://a.rtmp.youtube.com/live2",
        yt_stream_key="yt-key",
    )
    values.update(overrides)
    return RestreamConfig(**values)


def echo_live_stream(stream_id: str):
    def reply(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(
            201,
            json={
                "liveStreamId": stream_id,
                "name": body.get("name", "Live"),
                "streamKey": "primary-key",
                "rtmpUrl": "rtmp://broadcast.api.video/s",
                "restreams": body.get("restreams", []),
            },
        )

    return reply


@pytest.fixture
def orchestrator(graph_stub: ProviderStub, apivideo_stub: ProviderStub) -> RestreamOrchestrator:
    return RestreamOrchestrator(
        make_config(),
        graph_client=GraphClient(
            base_url=GRAPH_BASE_URL, api_version="v18.0", transport=graph_stub.transport
        ),
        stream_provisioner=StreamProvisioner(
            base_url=APIVIDEO_BASE_URL, transport=apivideo_stub.transport
        ),
        validation_policy=ValidationPolicy.LENIENT,
        today=lambda: date(2025, 10, 1),
    )


@pytest.fixture
def healthy_providers(graph_stub: ProviderStub, apivideo_stub: ProviderStub) -> None:
    graph_stub.on("GET", "/me", httpx.Response(200, json={"id": "1"}))
    graph_stub.on(
        "GET", "/oauth/access_token", httpx.Response(200, json={"access_token": "long-lived"})
    )
    graph_stub.on(
        "GET",
        "/me/accounts",
        httpx.Response(
            200, json={"data": [{"id": PAGE_ID, "name": "Main Page", "access_token": "page-token"}]}
        ),
    )
    graph_stub.on(
        "POST", LIVE_VIDEOS, httpx.Response(200, json={"id": "live-123", "secure_stream_url": SECURE_URL})
    )
    apivideo_stub.on("POST", "/live-streams", echo_live_stream("li123"))


class TestPrepareLive:
    async def test_full_run_succeeds(self, healthy_providers, apivideo_stub, orchestrator):
        # Act
        result = await orchestrator.prepare_live("Sunday", "Service")

        # Assert
        assert result.status == OperationStatus.OK
        assert result.error is None
        assert result.stream_name == "Live - 01.oktober.25"
        assert [(r.label, r.server_url, r.stream_key) for r in result.restreams] == [
            ("Facebook Live", "rtmps://live-api-s.facebook.com:443/", "FB-KEY"),
            ("Youtube Live", "rtmp://a.rtmp.youtube.com/live2", "yt-key"),
        ]
        assert result.outputs.broadcast_id == "live-123"
        assert result.outputs.livestream_id == "li123"
        assert result.outputs.rtmp_url == "rtmp://broadcast.api.video/s"
        assert result.outputs.stream_key == "primary-key"
        assert orchestrator.state == OperationStatus.OK
        assert orchestrator.outputs == result.outputs

        payload = json.loads(apivideo_stub.requests[0].content)
        assert payload["name"] == "Live - 01.oktober.25"
        assert [r["name"] for r in payload["restreams"]] == ["Facebook Live", "Youtube Live"]

    async def test_no_destinations_creates_plain_stream(self, graph_stub, apivideo_stub, orchestrator):
        # Arrange
        apivideo_stub.on("POST", "/live-streams", echo_live_stream("li-plain"))
        await orchestrator.on_config_changed(
            make_config(enable_facebook_restream=False, enable_youtube_restream=False)
        )

        # Act
        result = await orchestrator.prepare_live()

        # Assert
        assert result.status == OperationStatus.OK
        assert result.restreams == []
        assert "restreams" not in json.loads(apivideo_stub.requests[0].content)
        assert graph_stub.requests == []

    async def test_missing_field_fails_before_any_call(self, graph_stub, apivideo_stub, orchestrator):
        # Arrange
        await orchestrator.on_config_changed(make_config(fb_page_id=None))

        # Act
        result = await orchestrator.prepare_live()

        # Assert
        assert result.status == OperationStatus.FAIL
        assert result.error == "Missing required Facebook configuration: fb_page_id"
        assert orchestrator.snapshot().last_error == result.error
        assert graph_stub.requests == []
        assert apivideo_stub.requests == []

    async def test_missing_api_key(self, orchestrator):
        await orchestrator.on_config_changed(make_config(apivideo_api_key=None))

        result = await orchestrator.prepare_live()

        assert result.status == OperationStatus.FAIL
        assert "api.video API key is required" in result.error
        assert orchestrator.snapshot().outputs.module_ready is False

    async def test_rejected_token_fails_the_run(self, graph_stub, apivideo_stub, orchestrator):
        # Arrange
        graph_stub.on("GET", "/me", graph_error(190, "Session has expired"))

        # Act
        result = await orchestrator.prepare_live()

        # Assert
        assert result.status == OperationStatus.FAIL
        assert "User Access Token is invalid or expired" in result.error
        assert orchestrator.state == OperationStatus.FAIL
        assert apivideo_stub.requests == []

    async def test_stream_failure_after_broadcast(self, healthy_providers, graph_stub, apivideo_stub, orchestrator):
        # Arrange
        apivideo_stub.replace("POST", "/live-streams", httpx.Response(500, json={"title": "Internal Error"}))

        # Act
        result = await orchestrator.prepare_live()

        # Assert
        assert result.status == OperationStatus.FAIL
        assert result.error == "api.video live stream creation error: Internal Error"
        assert result.outputs.broadcast_id == "live-123"
        assert result.outputs.livestream_id == ""
        assert graph_stub.count("POST", LIVE_VIDEOS) == 1

    async def test_unexpected_exception_is_reported(self, healthy_providers, orchestrator):
        orchestrator.streams.create_or_update_stream = MagicMock(side_effect=KeyError("liveStreamId"))

        result = await orchestrator.prepare_live()

        assert result.status == OperationStatus.FAIL
        assert result.error.startswith("KeyError")

    async def test_update_mode_patches_existing_stream(self, healthy_providers, apivideo_stub, orchestrator):
        # Arrange
        await orchestrator.on_config_changed(
            make_config(stream_mode=StreamMode.UPDATE, apivideo_live_stream_id="li-existing")
        )
        apivideo_stub.on(
            "GET",
            "/live-streams/li-existing",
            httpx.Response(
                200,
                json={
                    "liveStreamId": "li-existing",
                    "name": "Weekly",
                    "restreams": [{"name": "Facebook Live", "serverUrl": "rtmps://old/", "streamKey": "OLD"}],
                },
            ),
        )
        apivideo_stub.on("PATCH", "/live-streams/li-existing", echo_live_stream("li-existing"))

        # Act
        result = await orchestrator.prepare_live()

        # Assert
        assert result.status == OperationStatus.OK
        assert result.outputs.livestream_id == "li-existing"
        assert [r.stream_key for r in result.restreams] == ["FB-KEY", "yt-key"]
        assert apivideo_stub.count("POST", "/live-streams") == 0

    async def test_extended_token_is_reused_across_runs(self, healthy_providers, graph_stub, orchestrator):
        await orchestrator.prepare_live()
        await orchestrator.prepare_live()

        assert graph_stub.count("GET", "/oauth/access_token") == 1
        assert graph_stub.count("GET", "/me/accounts") == 1
        assert graph_stub.count("POST", LIVE_VIDEOS) == 2

    async def test_new_run_after_failure_starts_clean(self, healthy_providers, orchestrator):
        # Arrange
        await orchestrator.on_config_changed(make_config(yt_stream_key=None))
        failed = await orchestrator.prepare_live()
        await orchestrator.on_config_changed(make_config())

        # Act
        result = await orchestrator.prepare_live()

        # Assert
        assert failed.status == OperationStatus.FAIL
        assert result.status == OperationStatus.OK
        assert orchestrator.snapshot().last_error == ""

    async def test_listeners_see_every_transition(self, healthy_providers, orchestrator):
        # Arrange
        seen: list[OperationStatus] = []
        orchestrator.subscribe(lambda snapshot: seen.append(snapshot.status))

        # Act
        await orchestrator.prepare_live()
        await orchestrator.prepare_live()

        # Assert
        assert seen == [
            OperationStatus.IN_PROGRESS,
            OperationStatus.OK,
            OperationStatus.IDLE,
            OperationStatus.IN_PROGRESS,
            OperationStatus.OK,
        ]


class TestReset:
    def test_reset_from_idle_is_noop(self, orchestrator):
        orchestrator.reset()

        assert orchestrator.state == OperationStatus.IDLE

    async def test_reset_after_run(self, healthy_providers, orchestrator):
        await orchestrator.prepare_live()

        orchestrator.reset()

        assert orchestrator.state == OperationStatus.IDLE

    def test_reset_while_in_progress_raises(self, orchestrator):
        orchestrator.status.transition(OperationStatus.IN_PROGRESS)

        with pytest.raises(AppError) as exc_info:
            orchestrator.reset()

        assert exc_info.value.status_code == 409
        assert orchestrator.state == OperationStatus.IN_PROGRESS


class TestHostLifecycle:
    async def test_initialize_sets_readiness(self, orchestrator):
        listener = MagicMock()
        orchestrator.subscribe(listener)

        await orchestrator.initialize(make_config(apivideo_api_key=None))

        assert orchestrator.is_ready_for_use() is False
        assert listener.call_args.args[0].outputs.module_ready is False

    async def test_credential_change_clears_cached_tokens(self, orchestrator):
        # Arrange
        orchestrator.store.set_account(AccountToken.with_ttl("long-lived", timedelta(days=1)))

        # Act
        await orchestrator.on_config_changed(make_config(fb_user_token="new-user-token"))

        # Assert
        assert orchestrator.store.get_account() is None

    async def test_unrelated_change_keeps_cached_tokens(self, orchestrator):
        token = AccountToken.with_ttl("long-lived", timedelta(days=1))
        orchestrator.store.set_account(token)

        await orchestrator.on_config_changed(make_config(yt_stream_key="other-key"))

        assert orchestrator.store.get_account() == token

    async def test_shutdown_drops_tokens_and_listeners(self, orchestrator):
        # Arrange
        listener = MagicMock()
        orchestrator.subscribe(listener)
        orchestrator.store.set_account(AccountToken.with_ttl("long-lived", timedelta(days=1)))

        # Act
        await orchestrator.shutdown()
        orchestrator.status.transition(OperationStatus.IN_PROGRESS)

        # Assert
        assert orchestrator.store.get_account() is None
        listener.assert_not_called()
