from __future__ import annotations

import argparse
import socket
import sys

import uvicorn

from open311_api.config import Settings, get_settings
from open311_api.main import create_app
from open311_api.observability.logging import LogFacade


def bind_listener(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


def serve(settings: Settings | None = None, log: LogFacade | None = None) -> int:
    """Run the API on a bound TCP listener. Returns the process exit status."""

    settings = settings or get_settings()
    app = create_app(settings, log=log)
    log = app.state.log
    log.route()

    try:
        sock = bind_listener(settings.host, settings.port)
    except OSError as exc:
        log.critical("Could not start server on %s:%d: %s", settings.host, settings.port, exc)
        log.close()
        return 1

    log.info("Open311 API server starting on %s:%d...", settings.host, settings.port)
    server = uvicorn.Server(uvicorn.Config(app, log_config=None))
    try:
        server.run(sockets=[sock])
    except SystemExit as exc:
        # uvicorn exits with a non-zero status when startup fails.
        if exc.code:
            log.critical("Server exited during startup with status %s", exc.code)
            return 1
    except Exception as exc:  # noqa: BLE001 - fatal, report and exit non-zero
        log.critical("Server stopped unexpectedly: %s", exc)
        return 1
    finally:
        sock.close()
        log.close()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Open311 service request API")
    parser.add_argument("--host", default=None, help="Interface to listen on (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="TCP port to listen on (default: PORT or 8080)")
    args = parser.parse_args()

    settings = get_settings()
    overrides = {key: value for key, value in (("host", args.host), ("port", args.port)) if value is not None}
    if overrides:
        settings = settings.model_copy(update=overrides)

    sys.exit(serve(settings))


if __name__ == "__main__":
    main()
