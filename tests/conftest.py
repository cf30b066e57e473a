from __future__ import annotations

import io
import itertools
from collections.abc import AsyncIterator, Iterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from open311_api.config import Settings, get_settings
from open311_api.main import create_app
from open311_api.observability.logging import LogFacade

API_KEY = "your-secret-api-key"
# Unparseable port: forces the local fallback sink without touching DNS.
UNREACHABLE_SYSLOG = "localhost:no-port"

_logger_ids = itertools.count()


def unique_logger_name() -> str:
    return f"open311.test.{next(_logger_ids)}"


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("OPEN311_API_KEY", API_KEY)
    monkeypatch.setenv("SYSLOG_ADDRESS", UNREACHABLE_SYSLOG)
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def log_facade(log_stream: io.StringIO) -> Iterator[LogFacade]:
    facade = LogFacade(UNREACHABLE_SYSLOG, stream=log_stream, name=unique_logger_name())
    facade.open()
    yield facade
    facade.close()


@pytest.fixture
def app(log_facade: LogFacade) -> FastAPI:
    return create_app(Settings(), log=log_facade)


@pytest.fixture
async def api_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

