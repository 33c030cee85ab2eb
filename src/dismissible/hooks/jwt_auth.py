"""JWT bearer-token authentication hook.

:class:`JwtAuthService` discovers the signing keys of an OpenID Connect
provider (well-known document → ``jwks_uri`` → JWKS) and verifies tokens
with PyJWT.  :class:`JwtAuthHook` plugs it into the request gate.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
import jwt

from dismissible._internal.clock import Clock, SystemClock
from dismissible.config import JwtAuthHookConfig, UserIdMatchType
from dismissible.exceptions import OperationBlockedError, UnauthorizedError
from dismissible.hooks.base import LifecycleHook
from dismissible.result import BatchHookResult, HookResult

if TYPE_CHECKING:
    from dismissible.context import RequestContext

logger = logging.getLogger(__name__)

MISSING_TOKEN_MESSAGE = "Missing or invalid bearer token"
USER_MISMATCH_MESSAGE = "User ID in request does not match authenticated user"


@dataclass(frozen=True)
class JwtValidationResult:
    valid: bool
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


class JwtAuthService:
    """Validates JWTs against a remote JWKS.

    The JWKS is cached for ``config.jwks_cache_duration`` seconds.  A token
    whose ``kid`` is not in a cached set triggers a refetch, so key
    rotation is picked up without waiting for the cache to expire.  Such
    refetches happen at most once per ``config.jwks_refetch_interval``
    seconds; tokens with made-up key ids cannot force a fetch per request.

    Parameters:
        config:      Discovery URL, issuer/audience checks, algorithms.
        http_client: Shared ``httpx.AsyncClient``.  When omitted the service
                     creates its own and closes it in :meth:`close`.
        clock:       Injectable clock for cache expiry.
    """

    def __init__(
        self,
        config: JwtAuthHookConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.request_timeout)
        self._clock = clock or SystemClock()
        self._jwks_uri: str | None = None
        self._keys: dict[str, jwt.PyJWK] = {}
        self._fetched_at: float | None = None

    @property
    def jwks_uri(self) -> str | None:
        return self._jwks_uri

    @property
    def initialized(self) -> bool:
        return self._jwks_uri is not None

    async def initialize(self) -> None:
        """Fetch the OpenID configuration and the key set it points to.

        Raises:
            httpx.HTTPError: The provider could not be reached.
            ValueError: The discovery document has no ``jwks_uri``.
        """
        logger.debug("Fetching OpenID configuration url=%s", self.config.well_known_url)
        try:
            response = await self._client.get(
                self.config.well_known_url, timeout=self.config.request_timeout
            )
            response.raise_for_status()
            jwks_uri = response.json().get("jwks_uri")
            if not jwks_uri:
                raise ValueError("No jwks_uri found in OpenID configuration")
            self._jwks_uri = jwks_uri
            await self.load_jwks()
        except Exception:
            logger.exception(
                "Failed to initialize JWKS client url=%s", self.config.well_known_url
            )
            raise
        logger.info("JWKS client initialized jwks_uri=%s", self._jwks_uri)

    async def load_jwks(self) -> None:
        """(Re)fetch the key set from ``jwks_uri``."""
        if self._jwks_uri is None:
            raise RuntimeError("JWKS client not initialized")

        response = await self._client.get(self._jwks_uri, timeout=self.config.request_timeout)
        response.raise_for_status()
        key_set = jwt.PyJWKSet.from_dict(response.json())
        self._keys = {key.key_id: key for key in key_set.keys if key.key_id}
        self._fetched_at = self._clock.now().timestamp()
        logger.debug("Loaded JWKS key_count=%d", len(self._keys))

    def _cache_age(self) -> float | None:
        if self._fetched_at is None:
            return None
        return self._clock.now().timestamp() - self._fetched_at

    def _cache_expired(self) -> bool:
        age = self._cache_age()
        return age is None or age >= self.config.jwks_cache_duration

    async def _signing_key(self, kid: str) -> jwt.PyJWK | None:
        if self._cache_expired():
            await self.load_jwks()
        elif kid not in self._keys:
            age = self._cache_age()
            if age is not None and age < self.config.jwks_refetch_interval:
                logger.debug("Unknown kid=%s, JWKS refetched %.1fs ago; not refetching", kid, age)
                return None
            await self.load_jwks()
        return self._keys.get(kid)

    @staticmethod
    def extract_bearer_token(authorization: str | None) -> str | None:
        """Return the token from ``"Bearer <token>"``, else ``None``."""
        if not authorization:
            return None
        parts = authorization.split(" ")
        if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
            return None
        return parts[1]

    async def validate_token(self, token: str) -> JwtValidationResult:
        """Verify *token*; never raises for an invalid token."""
        if not self.initialized:
            return JwtValidationResult(valid=False, error="JWKS client not initialized")

        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError:
            return JwtValidationResult(valid=False, error="Invalid token format")

        kid = header.get("kid")
        if not kid:
            return JwtValidationResult(valid=False, error="Token missing key ID (kid)")

        try:
            key = await self._signing_key(kid)
        except (httpx.HTTPError, jwt.PyJWTError, ValueError) as e:
            logger.warning("Could not refresh JWKS: %s", e)
            key = self._keys.get(kid)
        if key is None:
            return JwtValidationResult(valid=False, error="Unable to find signing key")

        try:
            payload = jwt.decode(
                token,
                key.key,
                algorithms=list(self.config.algorithms),
                issuer=list(self.config.issuer) or None,
                audience=self.config.audience,
                options={"verify_aud": self.config.audience is not None},
            )
        except jwt.PyJWTError as e:
            logger.debug("Token validation failed: %s", e)
            return JwtValidationResult(valid=False, error=str(e))

        return JwtValidationResult(valid=True, payload=payload)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class JwtAuthHook(LifecycleHook):
    """Rejects requests without a valid bearer token.

    Runs on ``on_before_request`` and ``on_before_batch_request``.  Raises
    :class:`UnauthorizedError` for a missing or invalid token, and
    :class:`OperationBlockedError` when the token's user claim does not
    match the requested user id.

    Parameters:
        service: Token validator.  Built from *config* when omitted.
        config:  Hook settings; defaults to ``service.config``.
    """

    _hook_type = "jwt_auth"
    _hook_description = "Validates JWT bearer tokens against a JWKS"

    def __init__(
        self,
        service: JwtAuthService | None = None,
        config: JwtAuthHookConfig | None = None,
        *,
        name: str = "jwt_auth",
    ) -> None:
        if service is None and config is None:
            raise TypeError("JwtAuthHook requires a service or a config")
        self.config = config or service.config  # type: ignore[union-attr]
        self.service = service or JwtAuthService(self.config)
        self.priority = self.config.priority
        self._name = name
        self._pattern = (
            re.compile(self.config.user_id_match_regex)
            if self.config.user_id_match_regex
            else None
        )

    @property
    def name(self) -> str:
        return self._name

    async def setup(self) -> None:
        if self.config.enabled and not self.service.initialized:
            await self.service.initialize()

    async def close(self) -> None:
        await self.service.close()

    def export(self) -> dict[str, Any]:
        data = super().export()
        data["config"] = self.config.model_dump(mode="json")
        return data

    async def on_before_request(
        self,
        item_id: str,
        user_id: str,
        context: RequestContext | None = None,
    ) -> HookResult:
        logger.debug("Authenticating request item_id=%s user_id=%s", item_id, user_id)
        await self._authenticate(user_id, context)
        return HookResult.allow()

    async def on_before_batch_request(
        self,
        item_ids: list[str],
        user_id: str,
        context: RequestContext | None = None,
    ) -> BatchHookResult:
        logger.debug("Authenticating batch request item_count=%d user_id=%s", len(item_ids), user_id)
        await self._authenticate(user_id, context)
        return BatchHookResult.allow()

    async def _authenticate(self, user_id: str, context: RequestContext | None) -> None:
        if not self.config.enabled:
            return

        request_id = context.request_id if context is not None else None
        header = context.header("authorization") if context is not None else None
        token = self.service.extract_bearer_token(header)
        if token is None:
            logger.debug("No bearer token provided user_id=%s request_id=%s", user_id, request_id)
            raise UnauthorizedError(MISSING_TOKEN_MESSAGE)

        result = await self.service.validate_token(token)
        if not result.valid:
            logger.debug(
                "Token rejected user_id=%s request_id=%s error=%s",
                user_id,
                request_id,
                result.error,
            )
            raise UnauthorizedError(result.error or MISSING_TOKEN_MESSAGE)

        token_user_id = result.payload.get(self.config.user_id_claim)
        if self.config.match_user_id and token_user_id:
            if not self.match_user_id(str(token_user_id), user_id):
                logger.debug(
                    "User ID mismatch user_id=%s request_id=%s token_user_id=%s",
                    user_id,
                    request_id,
                    token_user_id,
                )
                raise OperationBlockedError(USER_MISMATCH_MESSAGE)

        logger.debug("Token validated user_id=%s request_id=%s", user_id, request_id)

    def match_user_id(self, token_user_id: str, user_id: str) -> bool:
        """Compare the token's user claim with the requested user id."""
        match_type = self.config.user_id_match_type

        if match_type is UserIdMatchType.SUBSTRING:
            return user_id in token_user_id or token_user_id in user_id

        if match_type is UserIdMatchType.REGEX and self._pattern is not None:
            match = self._pattern.search(token_user_id)
            if match is None:
                return False
            # First capture group when the pattern has one, else the whole match.
            extracted = match.group(1) if match.re.groups else None
            return (extracted if extracted is not None else match.group(0)) == user_id

        return token_user_id == user_id
