"""Tests for the syslog-backed log facade."""

import io
import logging
import socket

import pytest
import structlog

from open311_api.observability.logging import LogFacade, SinkMode, parse_address, render_line

_names = iter(range(1_000_000))


def _facade(address: str, stream: io.StringIO, **kwargs) -> LogFacade:
    return LogFacade(address, stream=stream, name=f"open311.logging-test.{next(_names)}", **kwargs)


@pytest.fixture
def collector():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


class _FailingSocket:
    def sendto(self, *_args) -> None:
        raise OSError("collector unreachable")

    def close(self) -> None:
        return None


def test_unparseable_address_falls_back_to_stderr_stream() -> None:
    stream = io.StringIO()
    facade = _facade("localhost:no-port", stream)

    assert facade.mode is SinkMode.UNINITIALIZED
    assert facade.open() is SinkMode.FALLBACK
    assert "Failed to connect to syslog server at localhost:no-port" in stream.getvalue()

    facade.warning("disk at %d%%", 91)
    facade.critical("giving up")
    lines = stream.getvalue().splitlines()
    assert lines[-2].endswith("WARNING: disk at 91%")
    assert lines[-1].endswith("CRITICAL: giving up")
    facade.close()


def test_unresolvable_host_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    def _no_dns(*_args, **_kwargs):
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr(socket, "getaddrinfo", _no_dns)
    stream = io.StringIO()
    facade = _facade("syslog.invalid:514", stream)

    assert facade.open() is SinkMode.FALLBACK
    facade.info("still logged")
    assert "INFO: still logged" in stream.getvalue()
    facade.close()


def test_open_decides_once() -> None:
    stream = io.StringIO()
    facade = _facade("localhost:no-port", stream)
    facade.open()
    facade.open()

    assert stream.getvalue().count("Failed to connect") == 1
    facade.close()


def test_connected_facade_sends_datagrams_to_collector(collector) -> None:
    port = collector.getsockname()[1]
    stream = io.StringIO()
    facade = _facade(f"127.0.0.1:{port}", stream)

    assert facade.open() is SinkMode.CONNECTED
    assert f"Successfully connected to syslog server at 127.0.0.1:{port}" in stream.getvalue()

    facade.info("Created request: %s", "SR000001")
    datagram, _ = collector.recvfrom(4096)
    # local0 facility (16) and info severity (6): <16 * 8 + 6>
    assert datagram.startswith(b"<134>open311-api: Created request: SR000001")

    facade.critical("Could not start server")
    datagram, _ = collector.recvfrom(4096)
    assert datagram.startswith(b"<130>open311-api: Could not start server")
    facade.close()


def test_connected_facade_includes_bound_context(collector) -> None:
    port = collector.getsockname()[1]
    facade = _facade(f"127.0.0.1:{port}", io.StringIO())
    facade.open()

    structlog.contextvars.bind_contextvars(request_id="req-42")
    try:
        facade.warning("Responding with error")
    finally:
        structlog.contextvars.clear_contextvars()

    datagram, _ = collector.recvfrom(4096)
    assert b"Responding with error [request_id=req-42]" in datagram
    facade.close()


def test_failed_send_is_reported_locally_and_swallowed(collector) -> None:
    port = collector.getsockname()[1]
    stream = io.StringIO()
    facade = _facade(f"127.0.0.1:{port}", stream)
    facade.open()
    facade.handler.socket.close()
    facade.handler.socket = _FailingSocket()

    facade.error("lost %s", "message")

    assert "Syslog (ERROR) write error: collector unreachable. Original message: lost message" in stream.getvalue()
    facade.close()


def test_records_below_level_are_dropped() -> None:
    stream = io.StringIO()
    facade = _facade("localhost:no-port", stream, level="WARNING")
    facade.open()

    facade.info("chatty")
    facade.warning("important")
    assert "chatty" not in stream.getvalue()
    assert "important" in stream.getvalue()
    facade.close()


def test_route_sends_uvicorn_records_to_the_sink() -> None:
    stream = io.StringIO()
    facade = _facade("localhost:no-port", stream)

    with pytest.raises(RuntimeError):
        facade.route()

    facade.open()
    target = logging.getLogger("open311.logging-test.uvicorn")
    previous = target.handlers[:], target.propagate
    try:
        facade.route(target.name)
        target.setLevel(logging.INFO)
        target.info("Uvicorn running on %s", "http://0.0.0.0:8080")
        assert "INFO: Uvicorn running on http://0.0.0.0:8080" in stream.getvalue()
    finally:
        target.handlers, target.propagate = previous
        facade.close()


def test_render_line_appends_context_and_traceback() -> None:
    event = {"event": "boom", "level": "error", "request_id": "abc", "exception": "Traceback: ..."}
    assert render_line(None, "error", event) == "boom [request_id=abc]\nTraceback: ..."
    assert render_line(None, "info", {"event": "plain", "level": "info"}) == "plain"


@pytest.mark.parametrize(
    ("address", "expected"),
    [
        ("localhost:514", ("localhost", 514)),
        ("10.0.0.5:5514", ("10.0.0.5", 5514)),
        ("collector", ("collector", 514)),
    ],
)
def test_parse_address(address: str, expected: tuple[str, int]) -> None:
    assert parse_address(address) == expected


def test_parse_address_rejects_bad_values() -> None:
    with pytest.raises(ValueError):
        parse_address(":514")
    with pytest.raises(ValueError):
        parse_address("localhost:syslog")
