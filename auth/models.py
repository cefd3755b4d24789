from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any

from auth.urls import append_query_params


@dataclass(frozen=True)
class ProviderMetadata:
    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    jwks_uri: str
    signing_algorithms: tuple[str, ...] = ("RS256",)
    token_auth_methods: tuple[str, ...] = ()

    @classmethod
    def from_discovery(cls, payload: object) -> "ProviderMetadata":
        if not isinstance(payload, dict):
            raise ValueError("Discovery document must be a JSON object.")
        required = ("issuer", "authorization_endpoint", "token_endpoint", "jwks_uri")
        for key in required:
            value = payload.get(key)
            if not isinstance(value, str) or not value:
                raise ValueError(f"Discovery document missing {key}.")

        algorithms = payload.get("id_token_signing_alg_values_supported") or ["RS256"]
        auth_methods = payload.get("token_endpoint_auth_methods_supported") or []
        return cls(
            issuer=payload["issuer"],
            authorization_endpoint=payload["authorization_endpoint"],
            token_endpoint=payload["token_endpoint"],
            jwks_uri=payload["jwks_uri"],
            signing_algorithms=tuple(str(alg) for alg in algorithms if alg != "none"),
            token_auth_methods=tuple(str(method) for method in auth_methods),
        )

    def supports_basic_auth(self) -> bool:
        if not self.token_auth_methods:
            return True
        return "client_secret_basic" in self.token_auth_methods


@dataclass(frozen=True)
class OAuthClientConfig:
    client_id: str
    client_secret: str
    redirect_url: str
    scopes: tuple[str, ...]
    authorization_endpoint: str
    token_endpoint: str

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "state": state,
        }
        if self.scopes:
            params["scope"] = " ".join(self.scopes)
        return append_query_params(self.authorization_endpoint, params)


@dataclass
class TokenResponse:
    access_token: str
    token_type: str
    expires_at: float | None
    extra: dict[str, Any] = field(default_factory=dict)

    def extra_field(self, key: str) -> Any:
        return self.extra.get(key)

    @classmethod
    def from_payload(cls, payload: dict) -> "TokenResponse":
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise RuntimeError("Token response missing access_token.")

        expires_at = None
        expires_in = payload.get("expires_in")
        if expires_in not in (None, ""):
            try:
                expires_at = time.time() + int(expires_in)
            except (TypeError, ValueError):
                raise RuntimeError("Token response expires_in must be an integer.")

        return cls(
            access_token=access_token,
            token_type=str(payload.get("token_type") or "Bearer"),
            expires_at=expires_at,
            extra=dict(payload),
        )


@dataclass(frozen=True)
class IDToken:
    raw: str
    payload: Any

    def claims(self) -> dict[str, Any]:
        if not isinstance(self.payload, dict):
            raise ValueError("ID token payload is not a JSON object.")
        # Round-trip so the profile holds plain JSON values only.
        return json.loads(json.dumps(self.payload))
