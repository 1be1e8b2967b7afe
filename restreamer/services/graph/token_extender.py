"""Account (user) token validation and long-lived exchange."""

from datetime import timedelta

import httpx
from loguru import logger

from restreamer.schemas.tokens import AccountToken
from restreamer.shared.utils import mask_secret
from restreamer.utils.app_errors import CredentialInvalidError, ProviderError

from .graph_client import GraphApiError, GraphClient
from .token_store import TokenStore
from .token_validator import TokenValidator

# Long-lived user tokens last about 60 days; renew well before that
LONG_LIVED_TOKEN_TTL = timedelta(days=50)


class TokenExtender:
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
        self._log = log or logger.bind(component="token_extender")

    async def extend_account_token(
        self, short_lived_token: str, exchange_id: str, exchange_secret: str
    ) -> str:
        """Exchange a short-lived user token for a long-lived one.

        Raises:
            ProviderError: If the exchange call fails or returns no access_token
        """
        try:
            body = await self.client.exchange_token(short_lived_token, exchange_id, exchange_secret)
        except GraphApiError as exc:
            self._log.error(f"Failed to extend User Access Token: {exc.message}")
            raise ProviderError(f"Token extension error: {exc.message}", provider_code=exc.code) from exc
        except (httpx.HTTPError, ValueError) as exc:
            self._log.error(f"Failed to extend User Access Token: {exc}")
            raise ProviderError(f"Token extension error: {exc}") from exc

        extended = body.get("access_token")
        if not extended:
            self._log.error("Token exchange returned no access_token")
            raise ProviderError("Token extension error: no extended token returned from Facebook API")

        self._log.info(
            f"Successfully extended User Access Token. Expires in: {body.get('expires_in')} seconds"
        )
        return extended

    async def get_valid_account_token(
        self,
        raw_token: str,
        exchange_id: str | None = None,
        exchange_secret: str | None = None,
    ) -> AccountToken:
        """Return a usable account token, extending it when exchange credentials exist.

        Args:
            raw_token: User access token from configuration
            exchange_id: Facebook App ID (optional, enables extension)
            exchange_secret: Facebook App Secret (optional, enables extension)

        Returns:
            The cached long-lived token, a freshly extended one, or raw_token itself
            (with no expiry) when it cannot be extended.

        Raises:
            CredentialInvalidError: If the provider rejects raw_token
        """
        async with self.store.account_lock():
            cached = self.store.get_account()
            if cached is not None:
                self._log.debug("Using cached extended User Token")
                return cached

            if not await self.validator.validate(raw_token, "account"):
                self.store.clear_account()
                raise CredentialInvalidError(
                    "User Access Token is invalid or expired. Please update the token in configuration."
                )

            if not (exchange_id and exchange_secret):
                self._log.debug("User Token is valid, but no App credentials for extension")
                return AccountToken(value=raw_token)

            self._log.info("Extending User Access Token for long-term reliability...")
            try:
                extended = await self.extend_account_token(raw_token, exchange_id, exchange_secret)
            except ProviderError as exc:
                self._log.warning(f"Failed to extend User Token, using original: {exc.errmesg}")
                return AccountToken(value=raw_token)

            token = AccountToken.with_ttl(extended, LONG_LIVED_TOKEN_TTL)
            self.store.set_account(token)
            self._log.info(
                f"Cached extended User Token {mask_secret(extended)} until {token.expires_at:%Y-%m-%d}"
            )
            return token
