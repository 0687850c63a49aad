"""
kubereats.api.__main__

Entrypoint for running a service via `python -m kubereats.api`.

Responsibilities:
- Load settings (env), with optional command-line overrides.
- Create the app.
- Start the drain-aware uvicorn server with structlog-compatible logging config.
"""

from __future__ import annotations

import argparse

from kubereats.api.app import create_app
from kubereats.api.server import build_server
from kubereats.settings import Settings, get_settings


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="KubeEats service runtime")
    parser.add_argument(
        "--service",
        choices=("user", "order", "restaurant"),
        help="Service kind to serve (overrides KUBEREATS_SERVICE)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Listen port (overrides KUBEREATS_API_PORT)",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    overrides = {
        k: v for k, v in (("service", args.service), ("api_port", args.port)) if v is not None
    }
    if overrides:
        # Init kwargs take precedence over env vars in pydantic-settings.
        settings = Settings(**{**settings.model_dump(), **overrides})

    app = create_app(settings=settings)
    server = build_server(
        app,
        host=settings.api_host,
        port=settings.api_port,
        grace_period=settings.drain_grace_period_seconds,
    )
    server.run()


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# In the cluster this runs as the container command; the pod's
# terminationGracePeriodSeconds should exceed the drain grace period (uvicorn may
# spend up to that long again on connections still open after the drain).
