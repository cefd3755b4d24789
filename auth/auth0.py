from __future__ import annotations

import base64
import logging
import secrets
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import AnyHttpUrl, ValidationError
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from auth.errors import (
    AuthFlowError,
    ClaimsDecodeError,
    MissingCodeError,
    MissingIDTokenError,
    RandomnessError,
    SessionPersistError,
    StateMismatchError,
    URLConstructionError,
)
from auth.oidc import DEFAULT_TIMEOUT_SECONDS, IdentityProviderClient
from auth.provider import AuthenticatorConfig, AuthProvider, ErrorRenderer
from auth.session import (
    ACCESS_TOKEN_KEY,
    ID_TOKEN_KEY,
    MAX_COOKIE_BYTES,
    PROFILE_KEY,
    STATE_KEY,
    SessionStore,
)
from auth.urls import build_logout_url, request_origin

STATE_BYTES = 32
DEFAULT_SCOPES = "openid profile"
DEFAULT_LOGOUT_URI = "v2/logout"

LOGIN_ERROR_MESSAGE = "Error logging in"
LOGOUT_ERROR_MESSAGE = "Error logging out"


def parse_scopes(raw: str) -> tuple[str, ...]:
    scopes: list[str] = []
    for scope in raw.split():
        if scope not in scopes:
            scopes.append(scope)
    return tuple(scopes)


def _require_str(mapping: Mapping[str, Any], key: str) -> str:
    value = mapping.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"auth0: {key} is required.")
    return value.strip()


def _require_http_url(mapping: Mapping[str, Any], key: str) -> str:
    value = _require_str(mapping, key)
    try:
        AnyHttpUrl(value)
    except ValidationError as error:
        raise ValueError(f"auth0: {key} must be an http(s) URL: {value!r}") from error
    return value


@dataclass(frozen=True)
class Auth0Config(AuthenticatorConfig):
    issuer: str
    client_id: str
    client_secret: str
    redirect_url: str
    scopes: tuple[str, ...]
    logout_uri: str = DEFAULT_LOGOUT_URI
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Auth0Config":
        scopes = mapping.get("scopes") or DEFAULT_SCOPES
        if not isinstance(scopes, str):
            raise ValueError("auth0: scopes must be a space-delimited string.")

        logout_uri = mapping.get("logoutUri") or DEFAULT_LOGOUT_URI
        if not isinstance(logout_uri, str):
            raise ValueError("auth0: logoutUri must be a string.")

        timeout = mapping.get("timeout", DEFAULT_TIMEOUT_SECONDS)
        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            raise ValueError("auth0: timeout must be a number of seconds.")
        if timeout <= 0:
            raise ValueError("auth0: timeout must be positive.")

        return cls(
            issuer=_require_http_url(mapping, "issuer"),
            client_id=_require_str(mapping, "clientId"),
            client_secret=_require_str(mapping, "clientSecret"),
            redirect_url=_require_http_url(mapping, "redirectUrl"),
            scopes=parse_scopes(scopes),
            logout_uri=logout_uri,
            timeout=timeout,
        )

    def open(
        self,
        logger: logging.Logger,
        *,
        session_key: str,
        render_error: ErrorRenderer,
    ) -> "Auth0Provider":
        try:
            identity_provider = IdentityProviderClient.discover(
                self.issuer,
                client_id=self.client_id,
                client_secret=self.client_secret,
                redirect_url=self.redirect_url,
                scopes=self.scopes,
                timeout=self.timeout,
            )
        except Exception as error:
            logger.error("auth0: error opening authenticator: %s", error)
            raise

        return Auth0Provider(
            config=self,
            identity_provider=identity_provider,
            logger=logger,
            session_key=session_key,
            render_error=render_error,
        )


class Auth0Provider(AuthProvider):
    """Authorization-code login against an Auth0 (or any OIDC) tenant.

    Session keys: ``state`` holds the pending CSRF token between ``/login``
    and ``/callback``; ``id_token``, ``access_token`` and ``profile`` are
    written once the callback checks out. Every failure is logged with its
    detail and answered with the same generic page.
    """

    def __init__(
        self,
        *,
        config: Auth0Config,
        identity_provider: IdentityProviderClient,
        logger: logging.Logger,
        session_key: str,
        render_error: ErrorRenderer,
        token_bytes: Callable[[int], bytes] = secrets.token_bytes,
        max_cookie_bytes: int = MAX_COOKIE_BYTES,
    ) -> None:
        self.config = config
        self.identity_provider = identity_provider
        self.logger = logger
        self._session_key = session_key
        self._render_error = render_error
        self._token_bytes = token_bytes
        self._max_cookie_bytes = max_cookie_bytes

    # -- routes ----------------------------------------------------------------

    async def login(self, request: Request) -> Response:
        session = self._session(request)
        try:
            url = self.initiate_login(session)
        except AuthFlowError as error:
            session.rollback()
            return self._error(request, error, LOGIN_ERROR_MESSAGE)
        return RedirectResponse(url=url, status_code=307)

    async def callback(self, request: Request) -> Response:
        session = self._session(request)
        try:
            await self.handle_callback(session, request.query_params)
        except AuthFlowError as error:
            session.rollback()
            return self._error(request, error, LOGIN_ERROR_MESSAGE)
        return RedirectResponse(url="/", status_code=303)

    async def logout(self, request: Request) -> Response:
        session = self._session(request)
        host = request.headers.get("host") or request.url.netloc
        try:
            url = self.logout_url(request.url.scheme, host)
            session.clear()
            session.save()
        except AuthFlowError as error:
            session.rollback()
            return self._error(request, error, LOGOUT_ERROR_MESSAGE)
        return RedirectResponse(url=url, status_code=307)

    # -- flow ------------------------------------------------------------------

    def initiate_login(self, session: SessionStore) -> str:
        try:
            raw = self._token_bytes(STATE_BYTES)
        except (OSError, NotImplementedError) as error:
            raise RandomnessError(f"reading random state: {error}") from error

        state = base64.b64encode(raw).decode("ascii")
        session.set(STATE_KEY, state)
        session.save()
        return self.identity_provider.oauth_config.authorization_url(state)

    async def handle_callback(self, session: SessionStore, params: Mapping[str, str]) -> None:
        # No stored state means no login was started from this session. The
        # check is skipped in that case, which is weaker than rejecting.
        expected_state = session.get(STATE_KEY)
        if expected_state is not None and params.get("state") != expected_state:
            raise StateMismatchError("state mismatch")

        code = params.get("code") or ""
        if not code:
            raise MissingCodeError("no code")

        token = await self.identity_provider.exchange_code(code)

        raw_id_token = token.extra_field("id_token")
        if not isinstance(raw_id_token, str):
            raise MissingIDTokenError("no id token in response")

        id_token = await self.identity_provider.verify_id_token(
            raw_id_token, self.identity_provider.oauth_config.client_id
        )

        try:
            profile = id_token.claims()
        except (TypeError, ValueError) as error:
            raise ClaimsDecodeError(f"decoding claims: {error}") from error

        session.set(ID_TOKEN_KEY, raw_id_token)
        session.set(ACCESS_TOKEN_KEY, token.access_token)
        session.set(PROFILE_KEY, profile)
        try:
            session.save()
        except SessionPersistError as error:
            raise SessionPersistError(str(error), status_code=401) from error

    def logout_url(self, scheme: str, host: str) -> str:
        try:
            return_to = request_origin(scheme, host)
            return build_logout_url(
                self.config.issuer,
                self.config.logout_uri,
                return_to=return_to,
                client_id=self.identity_provider.oauth_config.client_id,
            )
        except ValueError as error:
            raise URLConstructionError(f"building logout URL: {error}") from error

    # -- helpers ---------------------------------------------------------------

    def _session(self, request: Request) -> SessionStore:
        return SessionStore.from_request(
            request,
            secret_key=self._session_key,
            max_cookie_bytes=self._max_cookie_bytes,
        )

    def _error(self, request: Request, error: AuthFlowError, message: str) -> Response:
        self.logger.error("auth0: %s: %s", type(error).__name__, error)
        return self._render_error(request, message, error.status_code)
