from __future__ import annotations

from fastapi import Request

from open311_api.config import Settings
from open311_api.observability.logging import LogFacade
from open311_api.services.catalog import ServiceCatalog
from open311_api.services.request_registry import RequestRegistry


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_catalog(request: Request) -> ServiceCatalog:
    return request.app.state.catalog


def get_registry(request: Request) -> RequestRegistry:
    return request.app.state.registry


def get_log(request: Request) -> LogFacade:
    return request.app.state.log


def remote_addr(request: Request) -> str:
    if request.client is None:
        return "unknown"
    return f"{request.client.host}:{request.client.port}"
