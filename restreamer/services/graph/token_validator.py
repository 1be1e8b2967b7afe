"""Token liveness checks against the Graph API."""

from typing import Literal

import httpx
from loguru import logger

from restreamer.schemas.tokens import ValidationPolicy

from .graph_client import GraphApiError, GraphClient

TokenKind = Literal["account", "resource"]


class TokenValidator:
    def __init__(
        self,
        client: GraphClient,
        policy: ValidationPolicy = ValidationPolicy.LENIENT,
        log=None,
    ):
        self.client = client
        self.policy = policy
        self._log = log or logger.bind(component="token_validator")

    async def validate(self, token: str, kind: TokenKind = "account") -> bool:
        """Return whether the provider still accepts token.

        Only the provider's invalid-token code is a definite "no". Everything else
        (network errors, rate limits, odd payloads) is ambiguous and resolved by
        the policy.
        """
        try:
            await self.client.get_me(token)
            return True
        except GraphApiError as exc:
            if exc.is_invalid_token:
                self._log.debug(f"{kind} token is invalid or expired")
                return False
            reason = f"Graph error code={exc.code}: {exc.message}"
        except (httpx.HTTPError, ValueError) as exc:
            reason = f"{type(exc).__name__}: {exc}"

        if self.policy is ValidationPolicy.STRICT:
            self._log.warning(f"Could not validate {kind} token ({reason}); strict policy, treating as invalid")
            return False

        self._log.warning(f"Could not validate {kind} token ({reason}); assuming valid")
        return True
