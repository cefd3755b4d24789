from __future__ import annotations

import argparse
from pathlib import Path

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.sessions import SessionMiddleware

from auth.errors import DiscoveryError
from auth.provider import AuthProvider
from auth.registry import default_registry
from mob.config import Config, ConfigError, load_config
from mob.constants import LOGGER, SESSION_COOKIE
from mob.env import load_env, setup_logging
from mob.http import AccessLogMiddleware, build_routes
from mob.letters import LetterWriter
from mob.views import render_error


def create_app(config: Config, *, auth: AuthProvider | None = None) -> Starlette:
    """Build the application; opens the authenticator unless one is given.

    Opening runs OIDC discovery, so this fails before any route is served
    when the issuer is unreachable.
    """
    if auth is None:
        auth = config.authenticator.config.open(
            LOGGER,
            session_key=config.server.key,
            render_error=render_error,
        )

    letters = LetterWriter(config.server.letters_dir)
    middleware = [
        Middleware(AccessLogMiddleware),
        Middleware(
            SessionMiddleware,
            secret_key=config.server.key,
            session_cookie=SESSION_COOKIE,
            max_age=config.server.session_max_age,
            same_site="lax",
            https_only=config.server.secure_cookie,
        ),
    ]
    app = Starlette(routes=build_routes(auth, letters), middleware=middleware)
    app.state.config = config
    app.state.auth = auth
    return app


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mob")
    parser.add_argument("-p", dest="path", default="conf", help="path for config file")
    parser.add_argument("-f", dest="file", default="config.yml", help="filename for config file")
    parser.add_argument("--host", default="0.0.0.0", help="interface to listen on")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    load_env()

    try:
        config = load_config(Path(args.path) / args.file, default_registry())
    except ConfigError as error:
        raise SystemExit(f"server: {error}") from error

    try:
        setup_logging(config.server.logger.level, config.server.logger.encoding)
    except (RuntimeError, OSError) as error:
        raise SystemExit(f"server: error initializing logger: {error}") from error

    try:
        app = create_app(config)
    except DiscoveryError as error:
        LOGGER.critical("server: %s", error)
        raise SystemExit(1) from error

    uvicorn.run(app, host=args.host, port=config.server.port, log_config=None)


if __name__ == "__main__":
    main()
