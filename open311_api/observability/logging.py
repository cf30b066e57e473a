from __future__ import annotations

import logging
import socket
import sys
from enum import Enum
from logging.handlers import SysLogHandler
from typing import Any, TextIO

import structlog


_CONFIGURED = False

LOCAL_FORMAT = "%(asctime)s %(levelname)s: %(message)s"
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_CONTEXT_META_KEYS = ("level", "logger", "timestamp", "positional_args")


def configure_logging() -> None:
    """Configure structlog to hand rendered events to stdlib handlers.

    Safe to call multiple times (no-op after first call).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    _CONFIGURED = True


def render_line(_logger: Any, _method_name: str, event_dict: dict[str, Any]) -> str:
    """Render an event as `message [key=value ...]` followed by any traceback."""

    event = str(event_dict.pop("event", ""))
    exception = event_dict.pop("exception", None)
    for key in _CONTEXT_META_KEYS:
        event_dict.pop(key, None)

    line = event
    if event_dict:
        context = " ".join(f"{key}={value}" for key, value in sorted(event_dict.items()))
        line = f"{event} [{context}]"
    if exception:
        line = f"{line}\n{exception}"
    return line


def build_formatter(fmt: str = "%(message)s") -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            render_line,
        ],
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
        ],
        fmt=fmt,
    )


def parse_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        return address, 514
    if not host:
        raise ValueError(f"missing host in syslog address {address!r}")
    return host, int(port)


class SinkMode(str, Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTED = "connected"
    FALLBACK = "fallback"


class DatagramSysLogHandler(SysLogHandler):
    """UDP syslog handler that reports failed sends to a local handler."""

    def __init__(self, address: tuple[str, int], fallback: logging.Handler) -> None:
        super().__init__(address=address, facility=SysLogHandler.LOG_LOCAL0, socktype=socket.SOCK_DGRAM)
        self.fallback = fallback

    def handleError(self, record: logging.LogRecord) -> None:
        error = sys.exc_info()[1]
        try:
            original = self.format(record)
        except Exception as exc:  # noqa: BLE001 - report what we can
            original = f"<unformattable record: {exc}>"
        notice = logging.LogRecord(
            name=record.name,
            level=record.levelno,
            pathname=record.pathname,
            lineno=record.lineno,
            msg="Syslog (%s) write error: %s. Original message: %s",
            args=(record.levelname, error, original),
            exc_info=None,
        )
        self.fallback.handle(notice)


class LogFacade:
    """Severity emitters backed by a remote syslog collector or local stderr.

    `open()` decides the sink once: CONNECTED when the collector address resolves
    and a datagram socket can be created, FALLBACK otherwise. There is no
    reconnection; a failed send is written to the local stream and swallowed.
    """

    def __init__(
        self,
        address: str = "localhost:514",
        tag: str = "open311-api",
        *,
        level: int | str = logging.INFO,
        stream: TextIO | None = None,
        name: str = "open311",
    ) -> None:
        self.address = address
        self.tag = tag
        self.mode = SinkMode.UNINITIALIZED
        self.handler: logging.Handler | None = None
        self._stream = stream
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        self._logger.propagate = False
        self._log = structlog.get_logger(name)

    def open(self) -> SinkMode:
        if self.mode is not SinkMode.UNINITIALIZED:
            return self.mode

        configure_logging()
        local = logging.StreamHandler(self._stream)
        local.setFormatter(build_formatter(LOCAL_FORMAT))

        try:
            host, port = parse_address(self.address)
            socket.getaddrinfo(host, port, 0, socket.SOCK_DGRAM)
            remote = DatagramSysLogHandler((host, port), fallback=local)
        except (OSError, ValueError) as exc:
            self._install(local)
            self.mode = SinkMode.FALLBACK
            self._notice(
                local,
                logging.WARNING,
                "Failed to connect to syslog server at %s: %s. Logging to stderr.",
                self.address,
                exc,
            )
            return self.mode

        remote.ident = f"{self.tag}: "
        remote.setFormatter(build_formatter())
        self._install(remote)
        self.mode = SinkMode.CONNECTED
        self._notice(
            local,
            logging.INFO,
            "Successfully connected to syslog server at %s with tag '%s'",
            self.address,
            self.tag,
        )
        return self.mode

    def route(self, *names: str) -> None:
        """Send records from other stdlib loggers (e.g. uvicorn) to this sink."""

        if self.handler is None:
            raise RuntimeError("log facade is not open")
        for name in names or UVICORN_LOGGERS:
            logger = logging.getLogger(name)
            logger.handlers = [self.handler]
            logger.propagate = False

    def close(self) -> None:
        if self.handler is not None:
            self._logger.removeHandler(self.handler)
            self.handler.close()

    def info(self, msg: str, *args: Any) -> None:
        self._log.info(msg, *args)

    def warning(self, msg: str, *args: Any) -> None:
        self._log.warning(msg, *args)

    def error(self, msg: str, *args: Any, exc_info: Any = None) -> None:
        self._log.error(msg, *args, exc_info=exc_info)

    def critical(self, msg: str, *args: Any) -> None:
        self._log.critical(msg, *args)

    def _install(self, handler: logging.Handler) -> None:
        self._logger.handlers = [handler]
        self.handler = handler

    def _notice(self, handler: logging.Handler, level: int, msg: str, *args: Any) -> None:
        handler.handle(
            logging.LogRecord(
                name=self._logger.name,
                level=level,
                pathname=__file__,
                lineno=0,
                msg=msg,
                args=args,
                exc_info=None,
            )
        )
