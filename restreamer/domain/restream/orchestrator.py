"""Restream provisioning orchestration.

One RestreamOrchestrator owns one TokenStore and one ProvisioningStatus. The
host collaborator drives it through initialize / on_config_changed / shutdown
and starts runs with prepare_live.
"""

import asyncio
from collections.abc import Callable
from datetime import date

from loguru import logger

from restreamer.app_config import get_app_environ_config
from restreamer.schemas import OperationStatus, RestreamConfig, RestreamDestination
from restreamer.services.apivideo.apivideo_client import StreamProvisioner
from restreamer.services.apivideo.restreams import (
    FACEBOOK_LABEL,
    YOUTUBE_LABEL,
    merge_restream_destination,
)
from restreamer.services.graph.broadcast import BroadcastProvisioner
from restreamer.services.graph.graph_client import GraphClient
from restreamer.services.graph.resource_tokens import ResourceTokenResolver
from restreamer.services.graph.token_extender import TokenExtender
from restreamer.services.graph.token_store import TokenStore
from restreamer.services.graph.token_validator import TokenValidator, ValidationPolicy
from restreamer.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .destinations import PLATFORM_FACEBOOK, PLATFORM_YOUTUBE, validate_restream_config
from .restream_models import (
    PrepareLiveResult,
    ProvisioningOutputs,
    ProvisioningStatus,
    StatusListener,
    StatusSnapshot,
)
from .status_machine import OperationStateMachine
from .stream_name import generate_stream_name

# Changing any of these invalidates the cached Facebook tokens
_TOKEN_SCOPE_FIELDS = ("fb_user_token", "fb_app_id", "fb_app_secret", "fb_page_id")


class RestreamOrchestrator:
    """Sequences token resolution, Facebook broadcast creation and api.video provisioning."""

    def __init__(
        self,
        config: RestreamConfig | None = None,
        *,
        store: TokenStore | None = None,
        graph_client: GraphClient | None = None,
        stream_provisioner: StreamProvisioner | None = None,
        validation_policy: ValidationPolicy | None = None,
        today: Callable[[], date] = date.today,
        log=None,
    ):
        self.config = config or RestreamConfig()
        self.store = store or TokenStore()
        self.status = ProvisioningStatus()
        self._today = today
        self._log = log or logger.bind(component="orchestrator")
        self._run_lock = asyncio.Lock()

        graph = graph_client or GraphClient()
        policy = validation_policy or get_app_environ_config().TOKEN_VALIDATION_POLICY
        self.validator = TokenValidator(graph, policy=policy)
        self.extender = TokenExtender(graph, self.store, self.validator)
        self.resolver = ResourceTokenResolver(graph, self.store, self.validator)
        self.broadcaster = BroadcastProvisioner(graph, self.extender, self.resolver)
        self.streams = stream_provisioner or StreamProvisioner()

        self.status.outputs.module_ready = self.is_ready_for_use()

    # Host lifecycle

    async def initialize(self, config: RestreamConfig) -> None:
        self._log.info("Initializing Facebook & Youtube api.video restream module")
        self.config = config
        self._refresh_readiness()
        self._log.info(
            f"Module initialized (ready={self.is_ready_for_use()}, "
            f"mode={config.stream_mode}, facebook={config.enable_facebook_restream}, "
            f"youtube={config.enable_youtube_restream})"
        )

    async def on_config_changed(self, config: RestreamConfig) -> None:
        previous = self.config
        self.config = config
        if any(getattr(previous, f) != getattr(config, f) for f in _TOKEN_SCOPE_FIELDS):
            self._log.info("Facebook credentials changed, dropping cached tokens")
            self.store.clear()
        self._refresh_readiness()
        self._log.info("Configuration updated")

    async def shutdown(self) -> None:
        self._log.info("Shutting down restream module")
        self.store.clear()
        self.status.clear_listeners()

    def is_ready_for_use(self) -> bool:
        return bool(self.config.apivideo_api_key)

    def _refresh_readiness(self) -> None:
        self.status.outputs.module_ready = self.is_ready_for_use()
        self.status.notify()

    # Status surface

    @property
    def state(self) -> OperationStatus:
        return self.status.state

    @property
    def outputs(self) -> ProvisioningOutputs:
        return self.status.outputs.model_copy()

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        return self.status.subscribe(listener)

    def snapshot(self) -> StatusSnapshot:
        return self.status.snapshot()

    def reset(self) -> None:
        """Return a finished run (ok / fail) to idle.

        Raises:
            AppError: If a run is in progress
        """
        if self.status.state is OperationStatus.IN_PROGRESS:
            raise AppError(
                "Cannot reset while a provisioning run is in progress",
                errcode=AppErrorCode.E_INVALID_STATE_TRANSITION,
                status_code=HttpStatusCode.CONFLICT,
            )
        if OperationStateMachine.is_terminal(self.status.state):
            self.status.transition(OperationStatus.IDLE)

    # Provisioning run

    async def prepare_live(
        self,
        title: str = "Live Stream",
        description: str = "Automated live stream setup",
    ) -> PrepareLiveResult:
        """Provision every enabled destination and the api.video live stream.

        Runs are serialized: a call made while another run is in progress waits
        for it to finish. The first failure ends the run in FAIL; nothing created
        earlier in the run is rolled back.
        """
        async with self._run_lock:
            self.reset()
            self.status.transition(OperationStatus.IN_PROGRESS)
            self._log.info("Starting live stream preparation...")

            config = self.config
            outputs = self.status.outputs
            restreams: list[RestreamDestination] = []
            stream_name: str | None = None
            broadcast_id: str | None = None

            try:
                platforms = validate_restream_config(config)

                if PLATFORM_FACEBOOK in platforms:
                    self._log.info("Creating Facebook Live Video with automatic token management...")
                    broadcast = await self.broadcaster.create_broadcast(
                        config.fb_user_token,  # type: ignore[arg-type]
                        config.fb_page_id,  # type: ignore[arg-type]
                        title,
                        description,
                        config.fb_app_id,
                        config.fb_app_secret,
                    )
                    broadcast_id = broadcast.id
                    outputs.broadcast_id = broadcast.id
                    self._log.info(f"Facebook Live Video created: {broadcast.id}")
                    restreams = merge_restream_destination(
                        restreams,
                        RestreamDestination(
                            label=FACEBOOK_LABEL,
                            server_url=broadcast.endpoint.server_url,
                            stream_key=broadcast.endpoint.stream_key,
                        ),
                    )

                if PLATFORM_YOUTUBE in platforms:
                    self._log.info("Adding Youtube restream destination...")
                    restreams = merge_restream_destination(
                        restreams,
                        RestreamDestination(
                            label=YOUTUBE_LABEL,
                            server_url=config.yt_rtmp_url,  # type: ignore[arg-type]
                            stream_key=config.yt_stream_key,  # type: ignore[arg-type]
                        ),
                    )

                stream_name = generate_stream_name(self._today())
                self._log.info(f"Provisioning api.video live stream ({config.stream_mode}): {stream_name}")
                stream = await self.streams.create_or_update_stream(
                    config.apivideo_api_key,  # type: ignore[arg-type]
                    stream_name,
                    restreams,
                    mode=config.stream_mode,
                    stream_id=config.apivideo_live_stream_id,
                )
            except Exception as exc:
                message = exc.errmesg if isinstance(exc, AppError) else f"{type(exc).__name__}: {exc}"
                if isinstance(exc, AppError):
                    self._log.error(f"Live stream preparation failed: {message}")
                else:
                    self._log.exception(f"Live stream preparation failed unexpectedly: {message}")
                if broadcast_id:
                    self._log.warning(
                        f"Facebook Live Video {broadcast_id} was created before the failure "
                        "and is left orphaned"
                    )
                self.status.transition(OperationStatus.FAIL, message)
                return PrepareLiveResult(
                    status=OperationStatus.FAIL,
                    error=message,
                    stream_name=stream_name,
                    restreams=restreams,
                    outputs=outputs.model_copy(),
                )

            outputs.livestream_id = stream.id
            outputs.rtmp_url = stream.rtmp_url or ""
            outputs.stream_key = stream.stream_key or ""
            self._log.info(f"Live stream ready: {stream.id} rtmp={stream.rtmp_url}")
            if restreams:
                names = ", ".join(r.label for r in restreams)
                self._log.info(f"Live stream created with restream destinations: {names}")
            else:
                self._log.info("Live stream created without restream destinations")

            self.status.transition(OperationStatus.OK)
            return PrepareLiveResult(
                status=OperationStatus.OK,
                stream_name=stream.name or stream_name,
                restreams=stream.restreams or restreams,
                outputs=outputs.model_copy(),
            )
