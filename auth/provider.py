from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from starlette.requests import Request
from starlette.responses import Response

# (request, message, status_code) -> error page
ErrorRenderer = Callable[[Request, str, int], Response]


class AuthProvider(ABC):
    @abstractmethod
    async def login(self, request: Request) -> Response:
        raise NotImplementedError

    @abstractmethod
    async def callback(self, request: Request) -> Response:
        raise NotImplementedError

    @abstractmethod
    async def logout(self, request: Request) -> Response:
        raise NotImplementedError


class AuthenticatorConfig(ABC):
    """Parsed ``authenticator.config`` block for one provider type."""

    @abstractmethod
    def open(
        self,
        logger: logging.Logger,
        *,
        session_key: str,
        render_error: ErrorRenderer,
    ) -> AuthProvider:
        raise NotImplementedError
