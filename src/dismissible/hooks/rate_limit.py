"""RateLimitHook — sliding-window request rate limiter."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from dismissible._internal.clock import Clock, SystemClock
from dismissible.config import RateLimitHookConfig, RateLimitKeyMode, RateLimitKeyType
from dismissible.exceptions import TooManyRequestsError
from dismissible.hooks.base import LifecycleHook
from dismissible.result import BatchHookResult, HookResult

if TYPE_CHECKING:
    from dismissible.context import RequestContext

logger = logging.getLogger(__name__)

FALLBACK_KEY = "unknown"
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: float = 0.0


class RateLimitHook(LifecycleHook):
    """Limits how often a client may call the pipeline within a time window.

    The hook gates ``on_before_request`` and ``on_before_batch_request``; a
    batch costs one point.  Buckets are keyed on request attributes (IP,
    origin, referrer) taken from the context, combined per ``key_mode``.
    When a bucket is exhausted the hook raises :class:`TooManyRequestsError`
    instead of returning a blocked result, so transports can answer 429.

    State lives in process memory only.

    Parameters:
        config: Limits, key selection and priority.
        clock:  Injectable clock for testing.
    """

    _hook_type = "rate_limit"
    _hook_description = "Limits request rate per client within a time window"

    def __init__(
        self,
        config: RateLimitHookConfig | None = None,
        *,
        name: str = "rate_limit",
        clock: Clock | None = None,
    ) -> None:
        self.config = config or RateLimitHookConfig(enabled=True)
        self.priority = self.config.priority
        self._name = name
        self._clock = clock or SystemClock()
        self._hits: dict[str, list[float]] = {}
        self._blocked_until: dict[str, float] = {}
        self._next_sweep: float | None = None
        self._ignored = {
            k.strip().lower() for k in self.config.ignored_keys if k and k.strip()
        }

    @property
    def name(self) -> str:
        return self._name

    @property
    def bucket_count(self) -> int:
        """Number of keys currently tracked."""
        return len(self._hits.keys() | self._blocked_until.keys())

    def export(self) -> dict[str, Any]:
        data = super().export()
        data["config"] = self.config.model_dump(mode="json")
        return data

    # ── hook phases ──────────────────────────────────────────

    async def on_before_request(
        self,
        item_id: str,
        user_id: str,
        context: RequestContext | None = None,
    ) -> HookResult:
        self._check(context, item_id=item_id, user_id=user_id)
        return HookResult.allow()

    async def on_before_batch_request(
        self,
        item_ids: list[str],
        user_id: str,
        context: RequestContext | None = None,
    ) -> BatchHookResult:
        self._check(context, item_id=f"<batch of {len(item_ids)}>", user_id=user_id)
        return BatchHookResult.allow()

    def _check(self, context: RequestContext | None, *, item_id: str, user_id: str) -> None:
        if not self.config.enabled:
            return

        if self.is_ignored(context):
            logger.debug("Rate limit bypassed (ignored key) item_id=%s user_id=%s", item_id, user_id)
            return

        keys = self.generate_keys(context)
        result = self.consume_all(keys)
        if not result.allowed:
            logger.debug(
                "Rate limit exceeded item_id=%s user_id=%s keys=%s retry_after=%.3f",
                item_id,
                user_id,
                keys,
                result.retry_after,
            )
            raise TooManyRequestsError(
                RATE_LIMIT_MESSAGE,
                retry_after=math.ceil(result.retry_after) if result.retry_after > 0 else None,
            )

        logger.debug(
            "Request allowed item_id=%s user_id=%s keys=%s remaining=%d",
            item_id,
            user_id,
            keys,
            result.remaining,
        )

    # ── keys ─────────────────────────────────────────────────

    def generate_keys(self, context: RequestContext | None) -> list[str]:
        """Return the bucket key(s) for *context* according to ``key_mode``."""
        values = [(t, self._extract(t, context)) for t in self.config.key_type]
        present = [(t, v) for t, v in values if v]

        if self.config.key_mode is RateLimitKeyMode.OR:
            return [present[0][1]] if present else [FALLBACK_KEY]
        if self.config.key_mode is RateLimitKeyMode.ANY:
            return [f"{t.value}:{v}" for t, v in present] or [FALLBACK_KEY]
        return [":".join(v for _, v in present) or FALLBACK_KEY]

    def _extract(self, key_type: RateLimitKeyType, context: RequestContext | None) -> str | None:
        if context is None:
            return None
        if key_type is RateLimitKeyType.IP:
            forwarded_for = context.header("x-forwarded-for")
            if forwarded_for:
                first = forwarded_for.split(",")[0].strip()
                if first:
                    return first
            return context.header("x-real-ip") or context.ip or None
        if key_type is RateLimitKeyType.ORIGIN:
            return context.header("origin") or context.origin or None
        if key_type is RateLimitKeyType.REFERRER:
            return context.header("referer") or context.referer or None
        return None

    def is_ignored(self, context: RequestContext | None) -> bool:
        """``True`` when any raw key value, or its URL hostname, is whitelisted."""
        if not self._ignored:
            return False

        for key_type in self.config.key_type:
            raw = self._extract(key_type, context)
            if not raw:
                continue
            if raw.strip().lower() in self._ignored:
                return True
            hostname = urlparse(raw).hostname
            if hostname and hostname.lower() in self._ignored:
                return True
        return False

    # ── accounting ───────────────────────────────────────────

    def consume(self, key: str) -> RateLimitResult:
        """Spend one point from *key*'s bucket."""
        now = self._clock.now().timestamp()
        self._sweep(now)

        blocked_until = self._blocked_until.get(key)
        if blocked_until is not None:
            if now < blocked_until:
                return RateLimitResult(allowed=False, remaining=0, retry_after=blocked_until - now)
            del self._blocked_until[key]

        cutoff = now - self.config.duration
        hits = [ts for ts in self._hits.get(key, []) if ts > cutoff]

        if len(hits) >= self.config.points:
            self._hits[key] = hits
            retry_after = hits[0] + self.config.duration - now
            if self.config.block_duration is not None:
                self._blocked_until[key] = now + self.config.block_duration
                retry_after = self.config.block_duration
            return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

        hits.append(now)
        self._hits[key] = hits
        return RateLimitResult(allowed=True, remaining=self.config.points - len(hits))

    def _sweep(self, now: float) -> None:
        # Idle keys are dropped at most once per window.
        if self._next_sweep is not None and now < self._next_sweep:
            return
        self._next_sweep = now + self.config.duration

        cutoff = now - self.config.duration
        for key in [k for k, hits in self._hits.items() if not hits or hits[-1] <= cutoff]:
            del self._hits[key]
        for key in [k for k, until in self._blocked_until.items() if until <= now]:
            del self._blocked_until[key]

    def consume_all(self, keys: list[str]) -> RateLimitResult:
        """Consume from every key; the first exhausted bucket decides."""
        remaining: int | None = None
        for key in keys:
            result = self.consume(key)
            if not result.allowed:
                return result
            remaining = result.remaining if remaining is None else min(remaining, result.remaining)
        return RateLimitResult(allowed=True, remaining=remaining or 0)

    def reset(self) -> None:
        """Forget all buckets."""
        self._hits.clear()
        self._blocked_until.clear()
        self._next_sweep = None
