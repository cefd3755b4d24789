from __future__ import annotations

import json
import logging
import urllib.parse

import httpx
import jwt

from auth.errors import DiscoveryError, TokenExchangeError, TokenVerificationError
from auth.models import IDToken, OAuthClientConfig, ProviderMetadata, TokenResponse

DEFAULT_TIMEOUT_SECONDS = 10.0
DISCOVERY_PATH = "/.well-known/openid-configuration"

LOGGER = logging.getLogger("mob.oidc")


def discovery_url(issuer: str) -> str:
    return issuer.rstrip("/") + DISCOVERY_PATH


def _load_key_set(payload: object) -> jwt.PyJWKSet:
    if not isinstance(payload, dict):
        raise ValueError("JWKS document must be a JSON object.")
    return jwt.PyJWKSet.from_dict(payload)


class IdentityProviderClient:
    """Talks to one OIDC issuer: discovery, code exchange, ID token checks.

    ``metadata`` is fixed after discovery. The key set is replaced as a whole
    when the provider rotates keys.
    """

    def __init__(
        self,
        metadata: ProviderMetadata,
        oauth_config: OAuthClientConfig,
        key_set: jwt.PyJWKSet,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.metadata = metadata
        self.oauth_config = oauth_config
        self._key_set = key_set
        self._timeout = timeout
        self._client = client

    @classmethod
    def discover(
        cls,
        issuer: str,
        *,
        client_id: str,
        client_secret: str,
        redirect_url: str,
        scopes: tuple[str, ...],
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> "IdentityProviderClient":
        url = discovery_url(issuer)
        LOGGER.info("Fetching OIDC discovery document from %s", url)
        try:
            response = httpx.get(url, timeout=timeout)
            response.raise_for_status()
            metadata = ProviderMetadata.from_discovery(response.json())
        except (httpx.HTTPError, ValueError) as error:
            raise DiscoveryError(f"OIDC discovery failed for {issuer}: {error}") from error

        if metadata.issuer != issuer:
            raise DiscoveryError(
                f"Issuer mismatch: configured {issuer!r}, provider returned {metadata.issuer!r}"
            )

        try:
            jwks_response = httpx.get(metadata.jwks_uri, timeout=timeout)
            jwks_response.raise_for_status()
            key_set = _load_key_set(jwks_response.json())
        except (httpx.HTTPError, ValueError, jwt.PyJWTError) as error:
            raise DiscoveryError(f"Fetching signing keys failed for {issuer}: {error}") from error

        oauth_config = OAuthClientConfig(
            client_id=client_id,
            client_secret=client_secret,
            redirect_url=redirect_url,
            scopes=scopes,
            authorization_endpoint=metadata.authorization_endpoint,
            token_endpoint=metadata.token_endpoint,
        )
        return cls(metadata, oauth_config, key_set, timeout=timeout, client=client)

    # -- code exchange ---------------------------------------------------------

    async def exchange_code(self, code: str) -> TokenResponse:
        config = self.oauth_config
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": config.redirect_url,
        }
        auth = None
        if self.metadata.supports_basic_auth():
            auth = httpx.BasicAuth(
                urllib.parse.quote_plus(config.client_id),
                urllib.parse.quote_plus(config.client_secret),
            )
        else:
            data["client_id"] = config.client_id
            data["client_secret"] = config.client_secret

        own_client = self._client is None
        http_client = self._client or httpx.AsyncClient(timeout=self._timeout)

        try:
            response = await http_client.post(
                config.token_endpoint,
                data=data,
                auth=auth,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as error:
            raise TokenExchangeError(
                f"Token request failed with status {error.response.status_code}: "
                f"{error.response.text}"
            ) from error
        except httpx.HTTPError as error:
            raise TokenExchangeError(f"Token request failed: {error}") from error
        finally:
            if own_client:
                await http_client.aclose()

        try:
            return TokenResponse.from_payload(_decode_token_body(response))
        except (RuntimeError, ValueError) as error:
            raise TokenExchangeError(str(error)) from error

    # -- ID token verification -------------------------------------------------

    async def verify_id_token(self, raw: str, audience: str) -> IDToken:
        try:
            header = jwt.get_unverified_header(raw)
        except jwt.PyJWTError as error:
            raise TokenVerificationError(f"Malformed ID token: {error}") from error

        kid = header.get("kid")
        candidates = self._candidate_keys(kid)
        if not candidates and kid:
            LOGGER.info("Unknown signing key %s; refreshing JWKS", kid)
            await self._refresh_key_set()
            candidates = self._candidate_keys(kid)
        if not candidates:
            raise TokenVerificationError(f"No signing key found for kid {kid!r}.")

        allowed = self.metadata.signing_algorithms
        usable = [key for key in candidates if key.algorithm_name in allowed]
        if not usable:
            raise TokenVerificationError(
                f"No signing key for kid {kid!r} uses an advertised algorithm {list(allowed)}."
            )

        last_error: Exception | None = None
        for key in usable:
            try:
                payload = jwt.decode(
                    raw,
                    key=key.key,
                    algorithms=[key.algorithm_name],
                    audience=audience,
                    issuer=self.metadata.issuer,
                    options={"require": ["exp", "iat", "iss", "aud"]},
                )
            except jwt.InvalidSignatureError as error:
                last_error = error
                continue
            except (jwt.PyJWTError, TypeError, ValueError) as error:
                raise TokenVerificationError(f"ID token rejected: {error}") from error
            return IDToken(raw=raw, payload=payload)

        raise TokenVerificationError(f"ID token rejected: {last_error}")

    def _candidate_keys(self, kid: str | None) -> list[jwt.PyJWK]:
        keys = [key for key in self._key_set.keys if key.public_key_use in (None, "sig")]
        if kid:
            return [key for key in keys if key.key_id == kid]
        return keys

    async def _refresh_key_set(self) -> None:
        own_client = self._client is None
        http_client = self._client or httpx.AsyncClient(timeout=self._timeout)
        try:
            response = await http_client.get(self.metadata.jwks_uri)
            response.raise_for_status()
            self._key_set = _load_key_set(response.json())
        except (httpx.HTTPError, ValueError, jwt.PyJWTError) as error:
            raise TokenVerificationError(f"Refreshing signing keys failed: {error}") from error
        finally:
            if own_client:
                await http_client.aclose()


def _decode_token_body(response: httpx.Response) -> dict:
    content_type = response.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type or "text/plain" in content_type:
        return dict(urllib.parse.parse_qsl(response.text))
    try:
        payload = response.json()
    except json.JSONDecodeError as error:
        raise ValueError(f"Token response is not JSON: {error}") from error
    if not isinstance(payload, dict):
        raise ValueError("Token response must be a JSON object.")
    return payload
