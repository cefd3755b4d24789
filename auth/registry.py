from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from auth.auth0 import Auth0Config
from auth.provider import AuthenticatorConfig

ConfigFactory = Callable[[Mapping[str, Any]], AuthenticatorConfig]


class AuthenticatorRegistry:
    """Maps ``authenticator.type`` values to config parsers.

    Built once at startup and handed to the config loader.
    """

    def __init__(self) -> None:
        self._factories: dict[str, ConfigFactory] = {}

    def register(self, type_name: str, factory: ConfigFactory) -> None:
        if type_name in self._factories:
            raise ValueError(f"Authenticator type {type_name!r} is already registered.")
        self._factories[type_name] = factory

    def get(self, type_name: str) -> ConfigFactory | None:
        return self._factories.get(type_name)

    def types(self) -> list[str]:
        return sorted(self._factories)


def default_registry() -> AuthenticatorRegistry:
    registry = AuthenticatorRegistry()
    registry.register("auth0", Auth0Config.from_mapping)
    return registry
