"""Tests for RateLimitHook."""

import pytest

from dismissible import RequestContext, TooManyRequestsError
from dismissible.config import RateLimitHookConfig, RateLimitKeyMode, RateLimitKeyType
from dismissible.hooks import RateLimitHook


def make_hook(clock, **overrides):
    config = RateLimitHookConfig(enabled=True, points=3, duration=60, **overrides)
    return RateLimitHook(config, clock=clock)


def ctx_from(ip="10.0.0.1", **headers):
    return RequestContext(ip=ip, headers=headers)


async def test_allows_under_limit(clock):
    hook = make_hook(clock)
    for _ in range(3):
        assert (await hook.on_before_request("banner", "alice", ctx_from())).proceed


async def test_raises_over_limit(clock):
    hook = make_hook(clock)
    for _ in range(3):
        await hook.on_before_request("banner", "alice", ctx_from())

    clock.advance(10)
    with pytest.raises(TooManyRequestsError) as exc_info:
        await hook.on_before_request("banner", "alice", ctx_from())
    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 50
    assert "Rate limit exceeded" in exc_info.value.message


async def test_window_slides(clock):
    hook = make_hook(clock)
    for _ in range(3):
        await hook.on_before_request("banner", "alice", ctx_from())

    clock.advance(61)
    assert (await hook.on_before_request("banner", "alice", ctx_from())).proceed


async def test_block_duration_outlasts_window(clock):
    hook = make_hook(clock, block_duration=300)
    for _ in range(3):
        await hook.on_before_request("banner", "alice", ctx_from())
    with pytest.raises(TooManyRequestsError) as exc_info:
        await hook.on_before_request("banner", "alice", ctx_from())
    assert exc_info.value.retry_after == 300

    clock.advance(120)  # window is free again but the block holds
    with pytest.raises(TooManyRequestsError):
        await hook.on_before_request("banner", "alice", ctx_from())

    clock.advance(181)
    assert (await hook.on_before_request("banner", "alice", ctx_from())).proceed


async def test_per_ip_isolation(clock):
    hook = make_hook(clock)
    for _ in range(3):
        await hook.on_before_request("banner", "alice", ctx_from(ip="10.0.0.1"))
    assert (await hook.on_before_request("banner", "alice", ctx_from(ip="10.0.0.2"))).proceed


async def test_batch_costs_one_point(clock):
    hook = make_hook(clock)
    for _ in range(3):
        await hook.on_before_batch_request(["a", "b", "c"], "alice", ctx_from())
    with pytest.raises(TooManyRequestsError):
        await hook.on_before_batch_request(["a"], "alice", ctx_from())


async def test_disabled_hook_allows_everything(clock):
    hook = RateLimitHook(RateLimitHookConfig(enabled=False, points=1), clock=clock)
    for _ in range(5):
        assert (await hook.on_before_request("banner", "alice", ctx_from())).proceed


def test_default_priority():
    assert RateLimitHook().priority == -101


# ── keys ─────────────────────────────────────────────────────


def test_ip_prefers_forwarded_for(clock):
    hook = make_hook(clock)
    ctx = ctx_from(**{"x-forwarded-for": "203.0.113.7, 10.0.0.9", "x-real-ip": "198.51.100.1"})
    assert hook.generate_keys(ctx) == ["203.0.113.7"]


def test_ip_falls_back_to_real_ip_then_context(clock):
    hook = make_hook(clock)
    assert hook.generate_keys(ctx_from(**{"x-real-ip": "198.51.100.1"})) == ["198.51.100.1"]
    assert hook.generate_keys(ctx_from()) == ["10.0.0.1"]


def test_unknown_without_context(clock):
    assert make_hook(clock).generate_keys(None) == ["unknown"]


def test_and_mode_joins_values(clock):
    hook = make_hook(clock, key_type=["ip", "origin"], key_mode="and")
    assert hook.generate_keys(ctx_from(origin="https://app.example.com")) == [
        "10.0.0.1:https://app.example.com"
    ]


def test_or_mode_uses_first_available(clock):
    hook = make_hook(
        clock,
        key_type=[RateLimitKeyType.REFERRER, RateLimitKeyType.ORIGIN],
        key_mode=RateLimitKeyMode.OR,
    )
    assert hook.generate_keys(ctx_from(origin="https://app.example.com")) == [
        "https://app.example.com"
    ]


def test_any_mode_keys_each_value(clock):
    hook = make_hook(clock, key_type="ip,referrer", key_mode="any")
    ctx = ctx_from(referer="https://docs.example.com/page")
    assert hook.generate_keys(ctx) == ["ip:10.0.0.1", "referrer:https://docs.example.com/page"]


async def test_any_mode_blocks_when_one_bucket_exhausted(clock):
    hook = make_hook(clock, key_type="ip,origin", key_mode="any")
    for ip in ("10.0.0.1", "10.0.0.2", "10.0.0.3"):
        await hook.on_before_request("banner", "alice", ctx_from(ip=ip, origin="https://a.example"))

    # fresh IP, but the origin bucket is spent
    with pytest.raises(TooManyRequestsError):
        await hook.on_before_request("banner", "alice", ctx_from(ip="10.0.0.4", origin="https://a.example"))


# ── ignored keys ─────────────────────────────────────────────


async def test_ignored_raw_value_bypasses(clock):
    hook = make_hook(clock, ignored_keys=" 10.0.0.1 ")
    for _ in range(10):
        assert (await hook.on_before_request("banner", "alice", ctx_from())).proceed


async def test_ignored_hostname_bypasses(clock):
    hook = make_hook(clock, key_type="origin", ignored_keys=["App.Example.com"])
    ctx = ctx_from(origin="https://app.example.com:8443")
    assert hook.is_ignored(ctx)
    for _ in range(10):
        assert (await hook.on_before_request("banner", "alice", ctx)).proceed


def test_not_ignored(clock):
    hook = make_hook(clock, ignored_keys=["192.168.1.1"])
    assert not hook.is_ignored(ctx_from())


def test_export_includes_config(clock):
    exported = make_hook(clock).export()
    assert exported["type"] == "rate_limit"
    assert exported["config"]["points"] == 3
    assert exported["phases"] == ["on_before_request", "on_before_batch_request"]


def test_idle_keys_are_dropped_after_window(clock):
    hook = make_hook(clock)
    hook.consume("ip-1")
    hook.consume("ip-2")
    assert hook.bucket_count == 2

    clock.advance(30)
    hook.consume("ip-2")
    assert hook.bucket_count == 2

    clock.advance(31)
    hook.consume("ip-3")
    assert hook.bucket_count == 2  # ip-1 expired, ip-2 still inside its window

    clock.advance(61)
    hook.consume("ip-3")
    assert hook.bucket_count == 1


def test_expired_blocks_are_dropped(clock):
    hook = make_hook(clock, block_duration=300)
    for _ in range(4):
        hook.consume("ip-1")
    assert not hook.consume("ip-1").allowed

    clock.advance(301)
    hook.consume("ip-2")
    assert hook.bucket_count == 1
    assert hook.consume("ip-1").allowed
