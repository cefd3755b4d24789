import logging
from dataclasses import dataclass

import pytest

from auth.auth0 import DEFAULT_LOGOUT_URI, Auth0Config
from auth.oidc import DEFAULT_TIMEOUT_SECONDS
from auth.registry import AuthenticatorRegistry, default_registry
from mob.config import ConfigError, load_config, parse_config
from mob.constants import DEFAULT_LETTERS_DIR, DEFAULT_SESSION_MAX_AGE

CONFIG_TEMPLATE = """
server:
  port: ${MOB_PORT}
  key: $MOB_KEY
  logger:
    level: {level}
    encoding: console
authenticator:
  type: {type}
  config:
    issuer: https://mob.eu.auth0.com/
    clientId: ${MOB_CLIENT_ID}
    clientSecret: shh
    redirectUrl: http://localhost:8080/callback
    scopes: openid profile email openid
"""


def _config_text(*, level: str = "debug", type: str = "auth0") -> str:
    return CONFIG_TEMPLATE.replace("{level}", level).replace("{type}", type)


@pytest.fixture
def mob_env(monkeypatch) -> None:
    monkeypatch.setenv("MOB_PORT", "8080")
    monkeypatch.setenv("MOB_KEY", "cookie-secret")
    monkeypatch.setenv("MOB_CLIENT_ID", "mob-client")


def test_parse_config_expands_environment(mob_env) -> None:
    config = parse_config(_config_text(), default_registry())

    assert config.server.port == 8080
    assert config.server.key == "cookie-secret"
    assert config.server.logger.level == logging.DEBUG
    assert config.server.logger.encoding == "console"
    assert config.server.letters_dir == DEFAULT_LETTERS_DIR
    assert config.server.session_max_age == DEFAULT_SESSION_MAX_AGE
    assert config.server.secure_cookie is False
    assert config.authenticator.type == "auth0"
    assert isinstance(config.authenticator.config, Auth0Config)
    assert config.authenticator.config.client_id == "mob-client"


def test_parse_config_dedupes_scopes(mob_env) -> None:
    config = parse_config(_config_text(), default_registry())

    assert config.authenticator.config.scopes == ("openid", "profile", "email")
    assert config.authenticator.config.logout_uri == DEFAULT_LOGOUT_URI
    assert config.authenticator.config.timeout == DEFAULT_TIMEOUT_SECONDS


def test_unset_variable_expands_to_empty(monkeypatch, mob_env) -> None:
    monkeypatch.delenv("MOB_CLIENT_ID")

    with pytest.raises(ConfigError, match="clientId"):
        parse_config(_config_text(), default_registry())


@pytest.mark.parametrize(
    ("name", "level"),
    [
        ("info", logging.INFO),
        ("WARN", logging.WARNING),
        ("error", logging.ERROR),
        ("panic", logging.CRITICAL),
        ("fatal", logging.CRITICAL),
    ],
)
def test_log_level_names(mob_env, name, level) -> None:
    config = parse_config(_config_text(level=name), default_registry())

    assert config.server.logger.level == level


def test_unknown_log_level(mob_env) -> None:
    with pytest.raises(ConfigError, match="log level"):
        parse_config(_config_text(level="verbose"), default_registry())


def test_unknown_authenticator_type(mob_env) -> None:
    with pytest.raises(ConfigError, match="unknown authenticator type 'okta'"):
        parse_config(_config_text(type="okta"), default_registry())


@pytest.mark.parametrize("port", ["0", "70000", "http"])
def test_invalid_port(monkeypatch, mob_env, port) -> None:
    monkeypatch.setenv("MOB_PORT", port)

    with pytest.raises(ConfigError, match="server.port"):
        parse_config(_config_text(), default_registry())


def test_missing_session_key(monkeypatch, mob_env) -> None:
    monkeypatch.delenv("MOB_KEY")

    with pytest.raises(ConfigError, match="server.key"):
        parse_config(_config_text(), default_registry())


def test_invalid_redirect_url(mob_env) -> None:
    text = _config_text().replace("http://localhost:8080/callback", "localhost/callback")

    with pytest.raises(ConfigError, match="redirectUrl"):
        parse_config(text, default_registry())


def test_malformed_yaml() -> None:
    with pytest.raises(ConfigError, match="unmarshaling"):
        parse_config("server: [unterminated", default_registry())


def test_load_config_missing_file(tmp_path) -> None:
    with pytest.raises(ConfigError, match="error loading config"):
        load_config(tmp_path / "absent.yml", default_registry())


def test_load_config_reads_file(tmp_path, mob_env) -> None:
    path = tmp_path / "config.yml"
    path.write_text(_config_text(), encoding="utf-8")

    config = load_config(path, default_registry())

    assert config.server.port == 8080


def test_custom_authenticator_type(mob_env) -> None:
    @dataclass(frozen=True)
    class StaticConfig:
        values: dict

    registry = AuthenticatorRegistry()
    registry.register("static", lambda raw: StaticConfig(values=dict(raw)))

    config = parse_config(_config_text(type="static"), registry)

    assert config.authenticator.type == "static"
    assert config.authenticator.config.values["clientSecret"] == "shh"


def test_registry_rejects_duplicate_type() -> None:
    registry = default_registry()

    with pytest.raises(ValueError, match="already registered"):
        registry.register("auth0", Auth0Config.from_mapping)

    assert registry.types() == ["auth0"]
