from __future__ import annotations

import urllib.parse


def parse_absolute_url(url: str) -> urllib.parse.SplitResult:
    """Parse ``url`` and reject anything without a scheme and host."""
    parsed = urllib.parse.urlsplit(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Not an absolute URL: {url!r}")
    # Raises ValueError for a malformed port.
    _ = parsed.port
    return parsed


def append_query_params(url: str, params: dict[str, str]) -> str:
    parsed = urllib.parse.urlparse(url)
    existing = urllib.parse.parse_qs(parsed.query, keep_blank_values=True)
    for key, value in params.items():
        existing[key] = [value]

    new_query = urllib.parse.urlencode(existing, doseq=True)
    return urllib.parse.urlunparse(parsed._replace(query=new_query))


def request_origin(scheme: str, host: str) -> str:
    origin = f"{scheme}://{host}"
    parse_absolute_url(origin)
    return origin


def build_logout_url(issuer: str, logout_path: str, *, return_to: str, client_id: str) -> str:
    logout_url = issuer + logout_path
    parse_absolute_url(logout_url)
    return append_query_params(logout_url, {"returnTo": return_to, "client_id": client_id})
