from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from auth.provider import AuthenticatorConfig
from auth.registry import AuthenticatorRegistry

from .constants import DEFAULT_LETTERS_DIR, DEFAULT_SESSION_MAX_AGE
from .env import LOG_ENCODINGS, expand_env

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class LoggerConfig:
    level: int = logging.INFO
    encoding: str = "json"


@dataclass(frozen=True)
class ServerConfig:
    port: int
    key: str
    logger: LoggerConfig = field(default_factory=LoggerConfig)
    letters_dir: str = DEFAULT_LETTERS_DIR
    secure_cookie: bool = False
    session_max_age: int = DEFAULT_SESSION_MAX_AGE


@dataclass(frozen=True)
class Authenticator:
    type: str
    config: AuthenticatorConfig


@dataclass(frozen=True)
class Config:
    server: ServerConfig
    authenticator: Authenticator


def _section(mapping: Mapping[str, Any], key: str, *, required: bool = True) -> Mapping[str, Any]:
    value = mapping.get(key)
    if value is None and not required:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{key} must be a mapping.")
    return value


def parse_logger(raw: Mapping[str, Any]) -> LoggerConfig:
    level_name = str(raw.get("level") or "info").strip().lower()
    level = LOG_LEVELS.get(level_name)
    if level is None:
        raise ConfigError(f"no matching log level found for {level_name!r}")

    encoding = str(raw.get("encoding") or "json").strip().lower()
    if encoding not in LOG_ENCODINGS:
        raise ConfigError(f"unsupported logger encoding {encoding!r}")
    return LoggerConfig(level=level, encoding=encoding)


def parse_server(raw: Mapping[str, Any]) -> ServerConfig:
    try:
        port = int(str(raw.get("port", "")).strip())
    except ValueError:
        raise ConfigError("server.port must be an integer.")
    if not 0 < port < 65536:
        raise ConfigError("server.port must be between 1 and 65535.")

    key = raw.get("key")
    if not isinstance(key, str) or not key:
        raise ConfigError("server.key is required to sign session cookies.")

    try:
        session_max_age = int(raw.get("sessionMaxAge", DEFAULT_SESSION_MAX_AGE))
    except (TypeError, ValueError):
        raise ConfigError("server.sessionMaxAge must be an integer number of seconds.")

    secure_cookie = raw.get("secureCookie", False)
    if not isinstance(secure_cookie, bool):
        raise ConfigError("server.secureCookie must be a boolean.")

    return ServerConfig(
        port=port,
        key=key,
        logger=parse_logger(_section(raw, "logger", required=False)),
        letters_dir=str(raw.get("lettersDir") or DEFAULT_LETTERS_DIR),
        secure_cookie=secure_cookie,
        session_max_age=session_max_age,
    )


def parse_authenticator(
    raw: Mapping[str, Any], registry: AuthenticatorRegistry
) -> Authenticator:
    type_name = raw.get("type")
    factory = registry.get(type_name) if isinstance(type_name, str) else None
    if factory is None:
        raise ConfigError(f"unknown authenticator type {type_name!r}")

    try:
        config = factory(_section(raw, "config", required=False))
    except ValueError as error:
        raise ConfigError(f"parse authenticator config: {error}") from error
    return Authenticator(type=type_name, config=config)


def parse_config(text: str, registry: AuthenticatorRegistry) -> Config:
    try:
        raw = yaml.safe_load(expand_env(text))
    except yaml.YAMLError as error:
        raise ConfigError(f"error unmarshaling config: {error}") from error

    if not isinstance(raw, Mapping):
        raise ConfigError("config must be a mapping.")

    return Config(
        server=parse_server(_section(raw, "server")),
        authenticator=parse_authenticator(_section(raw, "authenticator"), registry),
    )


def load_config(path: str | Path, registry: AuthenticatorRegistry) -> Config:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as error:
        raise ConfigError(f"error loading config: {error}") from error
    return parse_config(text, registry)
