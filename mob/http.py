from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from auth.provider import AuthProvider
from auth.session import PROFILE_KEY, is_authenticated

from .constants import APP_VERSION, LOGGER
from .letters import LetterWriter, version_for_submit
from .views import render_index


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        LOGGER.info(
            "%s %s -> %s (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
        )
        return response


def build_routes(auth: AuthProvider, letters: LetterWriter) -> list[Route]:
    async def index_route(request: Request) -> Response:
        LOGGER.debug("route: loading template: index")
        if not is_authenticated(request.session):
            return RedirectResponse(url="/login", status_code=307)
        return render_index(request, profile=request.session[PROFILE_KEY])

    async def submit_route(request: Request) -> Response:
        if not is_authenticated(request.session):
            return RedirectResponse(url="/login", status_code=307)

        form = await request.form()
        letter = form.get("letter")
        if not isinstance(letter, str) or not letter.strip():
            LOGGER.info("post route: letter is required")
            return RedirectResponse(url="/", status_code=303)

        version = version_for_submit(form.get("submit"))
        try:
            path = letters.write(letter, version)
        except OSError as error:
            LOGGER.error("post route: writing letter: %s", error)
            return RedirectResponse(url="/", status_code=303)

        LOGGER.info("post route: saved %s letter to %s", version, path)
        return RedirectResponse(url="/", status_code=303)

    async def health_route(request: Request) -> Response:
        del request
        return JSONResponse({"status": "ok", "version": APP_VERSION})

    return [
        Route("/", index_route, methods=["GET"]),
        Route("/submit", submit_route, methods=["POST"]),
        Route("/login", auth.login, methods=["GET"]),
        Route("/logout", auth.logout, methods=["GET"]),
        Route("/callback", auth.callback, methods=["GET"]),
        Route("/health", health_route, methods=["GET"]),
    ]
