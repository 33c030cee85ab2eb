# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Hook factory for creating hook instances from configuration.

Uses the Registry pattern to map type strings to hook builders,
allowing extensibility without modifying factory code.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from pydantic import ValidationError

from dismissible.config import JwtAuthHookConfig, RateLimitHookConfig
from dismissible.exceptions import HookConfigError
from dismissible.hooks import JwtAuthHook, RateLimitHook

from .schema import HookConfigSchema

# A builder receives the hook name and the raw config mapping.
HookBuilder = Callable[..., object]


class HookFactoryError(HookConfigError):
    """Raised when hook creation fails."""

    pass


def _build_rate_limit(name: str, config: dict[str, Any]) -> RateLimitHook:
    return RateLimitHook(RateLimitHookConfig(**{"enabled": True, **config}), name=name)


def _build_jwt_auth(name: str, config: dict[str, Any]) -> JwtAuthHook:
    return JwtAuthHook(config=JwtAuthHookConfig(**{"enabled": True, **config}), name=name)


class HookFactory:
    """Creates hook instances from configuration.

    Hook types are registered at class level and can be extended via the
    `register` class method.  A registered builder is either a callable
    ``(name, config) -> hook`` or a hook class accepting ``name=`` plus the
    config entries as keyword arguments.

    Hooks built from configuration are enabled unless the config says
    ``"enabled": false``.

    Example:
        factory = HookFactory()
        hooks = factory.create_all([
            HookConfigSchema(name="rl", type="rate_limit", config={"points": 5}),
        ])
    """

    _registry: ClassVar[dict[str, HookBuilder]] = {
        "rate_limit": _build_rate_limit,
        "jwt_auth": _build_jwt_auth,
    }

    @classmethod
    def register(cls, type_name: str, builder: HookBuilder) -> None:
        """Register a custom hook type.

        Raises:
            ValueError: If a hook class declares a different ``_hook_type``

        Example:
            HookFactory.register("audit", AuditHook)
        """
        declared_type = getattr(builder, "_hook_type", None)
        if isinstance(builder, type) and declared_type not in (None, "base", type_name):
            raise ValueError(
                f"Hook {builder.__name__} has _hook_type='{declared_type}' "
                f"but is being registered as '{type_name}'"
            )
        cls._registry[type_name] = builder

    @classmethod
    def registered_types(cls) -> list[str]:
        """Return list of registered hook type names."""
        return list(cls._registry.keys())

    def create_all(self, configs: list[HookConfigSchema]) -> list[object]:
        """Create all hooks from a configuration list.

        Raises:
            HookFactoryError: If a type is unknown, a name is repeated, or
                a hook rejects its configuration
        """
        hooks: list[object] = []
        seen: set[str] = set()

        for config in configs:
            if config.name in seen:
                raise HookFactoryError(config.name, "duplicate hook name")
            seen.add(config.name)

            try:
                hooks.append(self._create_one(config))
            except HookFactoryError:
                raise
            except (ValidationError, TypeError, ValueError) as e:
                raise HookFactoryError(config.name, f"invalid '{config.type}' config: {e}") from e

        return hooks

    def _create_one(self, config: HookConfigSchema) -> object:
        builder = self._registry.get(config.type)
        if builder is None:
            available = ", ".join(sorted(self.registered_types()))
            raise HookFactoryError(
                config.name,
                f"unknown hook type '{config.type}'. Available types: {available}",
            )

        if isinstance(builder, type):
            return builder(name=config.name, **config.config)
        return builder(config.name, dict(config.config))
