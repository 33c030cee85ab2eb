"""Configuration models and environment loading.

Every model is a pydantic ``BaseModel``; list fields also accept a
comma-separated string so they can come straight from environment
variables.

Environment variables read by :meth:`DismissibleConfig.from_env`::

    DISMISSIBLE_STORAGE_TYPE                memory | sqlite
    DISMISSIBLE_STORAGE_PATH                path of the SQLite file
    DISMISSIBLE_RATE_LIMITER_ENABLED        true / false
    DISMISSIBLE_RATE_LIMITER_POINTS         requests per window
    DISMISSIBLE_RATE_LIMITER_DURATION       window length in seconds
    DISMISSIBLE_RATE_LIMITER_BLOCK_DURATION seconds to block once exceeded
    DISMISSIBLE_RATE_LIMITER_KEY_TYPE       e.g. "ip,origin"
    DISMISSIBLE_RATE_LIMITER_KEY_MODE       and | or | any
    DISMISSIBLE_RATE_LIMITER_IGNORED_KEYS   e.g. "10.0.0.1,example.com"
    DISMISSIBLE_RATE_LIMITER_PRIORITY
    DISMISSIBLE_JWT_AUTH_ENABLED            true / false
    DISMISSIBLE_JWT_AUTH_WELL_KNOWN_URL
    DISMISSIBLE_JWT_AUTH_ISSUER             comma-separated
    DISMISSIBLE_JWT_AUTH_AUDIENCE
    DISMISSIBLE_JWT_AUTH_ALGORITHMS         comma-separated
    DISMISSIBLE_JWT_AUTH_JWKS_CACHE_DURATION
    DISMISSIBLE_JWT_AUTH_JWKS_REFETCH_INTERVAL
    DISMISSIBLE_JWT_AUTH_REQUEST_TIMEOUT
    DISMISSIBLE_JWT_AUTH_PRIORITY
    DISMISSIBLE_JWT_AUTH_MATCH_USER_ID      true / false
    DISMISSIBLE_JWT_AUTH_USER_ID_CLAIM
    DISMISSIBLE_JWT_AUTH_USER_ID_MATCH_TYPE exact | substring | regex
    DISMISSIBLE_JWT_AUTH_USER_ID_MATCH_REGEX
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

ENV_PREFIX = "DISMISSIBLE_"


def _split_comma_separated(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class RateLimitKeyType(str, Enum):
    """What a rate limit bucket is keyed on."""

    IP = "ip"
    ORIGIN = "origin"
    REFERRER = "referrer"


class RateLimitKeyMode(str, Enum):
    """How several key types are combined."""

    AND = "and"  # one bucket keyed on all values joined
    OR = "or"  # first available value
    ANY = "any"  # one bucket per value; blocked if any is exhausted


class UserIdMatchType(str, Enum):
    EXACT = "exact"
    SUBSTRING = "substring"
    REGEX = "regex"


class StorageConfig(BaseModel):
    """Item store selection.

    Attributes:
        type: ``"memory"`` or ``"sqlite"``.
        path: SQLite database file (sqlite only).
    """

    type: Literal["memory", "sqlite"] = "memory"
    path: str = ""

    @model_validator(mode="after")
    def _require_path_for_sqlite(self) -> StorageConfig:
        if self.type == "sqlite" and not self.path:
            raise ValueError("sqlite storage requires 'path'")
        return self


class RateLimitHookConfig(BaseModel):
    """Settings for :class:`~dismissible.hooks.rate_limit.RateLimitHook`.

    Attributes:
        enabled:        Turns the hook into a pass-through when ``False``.
        points:         Requests allowed per window.
        duration:       Window length in seconds.
        block_duration: Seconds to keep rejecting once the limit is hit.
                        ``None`` means "until the window frees up".
        key_type:       Request attributes the bucket is keyed on.
        key_mode:       How several key types are combined.
        ignored_keys:   Raw values or hostnames that bypass the limit.
        priority:       Hook priority; runs right before authentication.
    """

    enabled: bool = False
    points: int = Field(default=10, gt=0)
    duration: float = Field(default=1.0, gt=0)
    block_duration: float | None = Field(default=None, gt=0)
    key_type: list[RateLimitKeyType] = Field(default_factory=lambda: [RateLimitKeyType.IP])
    key_mode: RateLimitKeyMode = RateLimitKeyMode.AND
    ignored_keys: list[str] = Field(default_factory=list)
    priority: int = -101

    @field_validator("key_type", "ignored_keys", mode="before")
    @classmethod
    def _split_lists(cls, value: Any) -> Any:
        return _split_comma_separated(value)


class JwtAuthHookConfig(BaseModel):
    """Settings for :class:`~dismissible.hooks.jwt_auth.JwtAuthHook`.

    Attributes:
        enabled:             Turns the hook into a pass-through when ``False``.
        well_known_url:      OpenID Connect discovery document URL.
        issuer:              Accepted ``iss`` values; empty skips the check.
        audience:            Expected ``aud``; ``None`` skips the check.
        algorithms:          Accepted signing algorithms.
        jwks_cache_duration: Seconds a fetched JWKS stays valid.
        jwks_refetch_interval: Minimum seconds between refetches caused by
                             a token naming an unknown key id.
        request_timeout:     HTTP timeout in seconds.
        priority:            Hook priority; authentication runs early.
        match_user_id:       Require the token's user claim to match the
                             request's user id.
        user_id_claim:       Claim holding the user id.
        user_id_match_type:  How the claim is compared.
        user_id_match_regex: Pattern for ``regex`` matching; the first
                             capture group (or the whole match) is compared.
    """

    enabled: bool = False
    well_known_url: str = ""
    issuer: list[str] = Field(default_factory=list)
    audience: str | None = None
    algorithms: list[str] = Field(default_factory=lambda: ["RS256"])
    jwks_cache_duration: float = 600.0
    jwks_refetch_interval: float = Field(default=30.0, ge=0)
    request_timeout: float = 30.0
    priority: int = -100
    match_user_id: bool = True
    user_id_claim: str = "sub"
    user_id_match_type: UserIdMatchType = UserIdMatchType.EXACT
    user_id_match_regex: str | None = None

    @field_validator("issuer", "algorithms", mode="before")
    @classmethod
    def _split_lists(cls, value: Any) -> Any:
        return _split_comma_separated(value)

    @model_validator(mode="after")
    def _check_required(self) -> JwtAuthHookConfig:
        if self.enabled and not self.well_known_url:
            raise ValueError("well_known_url is required when the hook is enabled")
        if self.user_id_match_type is UserIdMatchType.REGEX and not self.user_id_match_regex:
            raise ValueError("user_id_match_regex is required for regex matching")
        return self


class DismissibleConfig(BaseModel):
    """Top-level configuration of a dismissible deployment."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    rate_limiter: RateLimitHookConfig = Field(default_factory=RateLimitHookConfig)
    jwt_auth: JwtAuthHookConfig = Field(default_factory=JwtAuthHookConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DismissibleConfig:
        """Build a config from ``DISMISSIBLE_*`` variables.

        Unset variables fall back to the model defaults.
        """
        env = os.environ if environ is None else environ
        return cls(
            storage=_section(env, "STORAGE_"),
            rate_limiter=_section(env, "RATE_LIMITER_"),
            jwt_auth=_section(env, "JWT_AUTH_"),
        )


def _section(env: Mapping[str, str], prefix: str) -> dict[str, str]:
    full_prefix = ENV_PREFIX + prefix
    return {
        key[len(full_prefix) :].lower(): value
        for key, value in env.items()
        if key.startswith(full_prefix) and value != ""
    }
