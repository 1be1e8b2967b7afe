"""Facebook live video creation with automatic token management."""

import httpx
from loguru import logger

from restreamer.schemas.restream import BroadcastResult
from restreamer.shared.utils import mask_secret
from restreamer.utils.app_errors import (
    AppError,
    CredentialInvalidError,
    PermissionDeniedError,
    ProviderError,
    ProvisioningFailedError,
)

from .graph_client import GraphApiError, GraphClient
from .ingest import key_from_stream_url, parse_ingest_url
from .resource_tokens import ResourceTokenResolver
from .token_extender import TokenExtender

REQUIRED_PUBLISH_PERMISSION = "publish_video"


class BroadcastProvisioner:
    """Creates a live video on a Facebook page and returns its ingest endpoint."""

    def __init__(
        self,
        client: GraphClient,
        extender: TokenExtender,
        resolver: ResourceTokenResolver,
        log=None,
    ):
        self.client = client
        self.extender = extender
        self.resolver = resolver
        self._log = log or logger.bind(component="broadcast")

    async def create_broadcast(
        self,
        account_token: str,
        resource_id: str,
        title: str = "Live Stream",
        description: str = "Live stream via api.video",
        exchange_id: str | None = None,
        exchange_secret: str | None = None,
    ) -> BroadcastResult:
        """Create a Facebook Live Video and parse its secure ingest URL.

        Steps:
        1. Resolve a valid user token (cached, extended or raw)
        2. Resolve a valid page token for resource_id
        3. POST the live video with the page token

        Args:
            account_token: Facebook User Access Token from configuration
            resource_id: Facebook Page ID
            title: Live video title
            description: Live video description
            exchange_id: Facebook App ID (optional, for token extension)
            exchange_secret: Facebook App Secret (optional, for token extension)

        Returns:
            BroadcastResult with the live video id and its ingest endpoint

        Raises:
            CredentialInvalidError: Token rejected (Graph code 190)
            PermissionDeniedError: Token lacks publish_video (Graph code 200)
            ResourceNotFoundError: Page not owned by the user
            ProvisioningFailedError: Response has no secure_stream_url
            MalformedIngestUrlError: secure_stream_url cannot be parsed
            ProviderError: Any other provider failure
        """
        try:
            self._log.info("Ensuring User Access Token is valid...")
            user_token = await self.extender.get_valid_account_token(
                account_token, exchange_id, exchange_secret
            )

            self._log.info("Ensuring Page Access Token is valid...")
            page_token = await self.resolver.get_valid_resource_token(user_token, resource_id)

            self._log.info("Creating Facebook Live Video with validated tokens...")
            body = await self.client.create_live_video(
                resource_id, page_token.value, title, description
            )
        except GraphApiError as exc:
            self._log.error(f"Failed to create Facebook Live Video: {exc.message}")
            if exc.is_invalid_token:
                self._drop_cached_tokens(resource_id)
            raise self._classify(exc) from exc
        except AppError as exc:
            self._log.error(f"Failed to create Facebook Live Video: {exc.errmesg}")
            raise
        except (httpx.HTTPError, ValueError) as exc:
            self._log.error(f"Failed to create Facebook Live Video: {exc}")
            raise ProviderError(f"Facebook Live Video creation error: {exc}") from exc

        ingest_url = body.get("secure_stream_url")
        if not ingest_url:
            raise ProvisioningFailedError("Facebook API did not return streaming URL")

        endpoint = parse_ingest_url(ingest_url)
        alternate_key = key_from_stream_url(body.get("stream_url"))
        if alternate_key and alternate_key.split("?", 1)[0] != endpoint.stream_key:
            self._log.debug(
                f"stream_url key {mask_secret(alternate_key)} differs from secure_stream_url key"
            )

        self._log.info(
            f"Facebook RTMP parsing: server={endpoint.server_url} key={mask_secret(endpoint.stream_key)}"
        )
        self._log.info(f"Successfully created Facebook Live Video: {body.get('id')}")
        return BroadcastResult(
            id=str(body.get("id") or ""),
            ingest_url=ingest_url,
            endpoint=endpoint,
            title=title,
            description=description,
        )

    def _drop_cached_tokens(self, resource_id: str) -> None:
        """Forget the tokens a rejected call was made with so the next run re-resolves them."""
        store = self.resolver.store
        store.clear_account()
        store.purge_resource(resource_id)
        self._log.info(f"Dropped cached tokens for page {resource_id} after provider rejection")

    @staticmethod
    def _classify(exc: GraphApiError) -> AppError:
        if exc.is_invalid_token:
            return CredentialInvalidError("Facebook token is invalid or expired")
        if exc.is_permission_error:
            return PermissionDeniedError(
                f"Insufficient permissions - need {REQUIRED_PUBLISH_PERMISSION} permission",
                capability=REQUIRED_PUBLISH_PERMISSION,
            )
        return ProviderError(f"Facebook API error: {exc.message}", provider_code=exc.code)
