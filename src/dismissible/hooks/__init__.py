"""Lifecycle hooks and the runner that executes them."""

from dismissible.hooks.base import HOOK_PHASES, POST_PHASES, PRE_PHASES, LifecycleHook
from dismissible.hooks.custom import CustomHook
from dismissible.hooks.jwt_auth import JwtAuthHook, JwtAuthService, JwtValidationResult
from dismissible.hooks.rate_limit import RateLimitHook
from dismissible.hooks.runner import HookRunner
from dismissible.result import BatchHookResult, HookResult

__all__ = [
    "HOOK_PHASES",
    "POST_PHASES",
    "PRE_PHASES",
    "BatchHookResult",
    "CustomHook",
    "HookResult",
    "HookRunner",
    "JwtAuthHook",
    "JwtAuthService",
    "JwtValidationResult",
    "LifecycleHook",
    "RateLimitHook",
]
