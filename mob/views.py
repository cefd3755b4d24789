from __future__ import annotations

from typing import Any

from starlette.requests import Request
from starlette.responses import Response
from starlette.templating import Jinja2Templates

from .constants import TEMPLATES_DIR

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def render_index(
    request: Request,
    *,
    profile: dict[str, Any] | None = None,
    error: str | None = None,
    status_code: int = 200,
) -> Response:
    return templates.TemplateResponse(
        request,
        "index.html",
        {"profile": profile, "error": error},
        status_code=status_code,
    )


def render_error(request: Request, message: str, status_code: int) -> Response:
    return render_index(request, error=message, status_code=status_code)
