"""Page token derivation from a user token."""

from datetime import timedelta

import httpx
from loguru import logger

from restreamer.schemas.tokens import AccountToken, ResourceToken
from restreamer.utils.app_errors import CredentialInvalidError, ProviderError, ResourceNotFoundError

from .graph_client import GraphApiError, GraphClient
from .token_store import TokenStore
from .token_validator import TokenValidator

# Page tokens live as long as the user token; the window only bounds staleness
RESOURCE_TOKEN_TTL = timedelta(hours=24)


class ResourceTokenResolver:
    def __init__(
        self,
        client: GraphClient,
        store: TokenStore,
        validator: TokenValidator,
        log=None,
    ):
        self.client = client
        self.store = store
        self.validator = validator
        self._log = log or logger.bind(component="resource_tokens")

    async def fetch_resource_token(self, account_token: AccountToken, resource_id: str) -> str:
        """Look up resource_id in the account's owned pages and return its access token.

        Raises:
            ResourceNotFoundError: If the page is not owned by the account or has no token
            CredentialInvalidError: If the provider rejects the account token
            ProviderError: On any other provider or transport failure
        """
        try:
            body = await self.client.get_accounts(account_token.value)
        except GraphApiError as exc:
            self._log.error(f"Failed to retrieve Page Access Token: {exc.message}")
            if exc.is_invalid_token:
                # A rejected account token must not be served from the cache again
                self.store.clear_account()
                raise CredentialInvalidError(
                    f"Page Access Token retrieval error: {exc.message}"
                ) from exc
            raise ProviderError(
                f"Page Access Token retrieval error: {exc.message}", provider_code=exc.code
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            self._log.error(f"Failed to retrieve Page Access Token: {exc}")
            raise ProviderError(f"Page Access Token retrieval error: {exc}") from exc

        pages = body.get("data")
        if not isinstance(pages, list):
            raise ProviderError("Page Access Token retrieval error: no page data returned from Facebook API")

        page = next((p for p in pages if str(p.get("id")) == resource_id), None)
        if page is None or not page.get("access_token"):
            available = [f"{p.get('name')} ({p.get('id')})" for p in pages]
            self._log.error(f"Page {resource_id} not found among {len(pages)} owned pages")
            raise ResourceNotFoundError(
                f"Page {resource_id} not found or no access token available. "
                f"Available pages: {', '.join(available)}",
                available=available,
            )

        self._log.info(f"Successfully retrieved Page Access Token for page: {page.get('name')}")
        return page["access_token"]

    async def get_valid_resource_token(
        self, account_token: AccountToken, resource_id: str
    ) -> ResourceToken:
        """Return a cached page token that still validates, or fetch and cache a fresh one."""
        async with self.store.resource_lock(resource_id):
            cached = self.store.get_resource(resource_id)
            if cached is not None:
                if await self.validator.validate(cached.value, "resource"):
                    self._log.debug(f"Using cached Page Token for page {resource_id}")
                    return cached
                self._log.info(f"Cached Page Token for page {resource_id} is invalid, refreshing...")
                self.store.purge_resource(resource_id)

            self._log.info(f"Retrieving fresh Page Access Token for page {resource_id}...")
            value = await self.fetch_resource_token(account_token, resource_id)
            token = ResourceToken.with_ttl(resource_id, value, RESOURCE_TOKEN_TTL)
            self.store.set_resource(token)
            return token
