from __future__ import annotations

import secrets
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from open311_api.api.dependencies import get_app_settings, get_catalog, get_log, get_registry, remote_addr
from open311_api.api.errors import ApiError
from open311_api.config import Settings
from open311_api.models.schemas import ServiceRequest, ServiceRequestInput
from open311_api.observability.logging import LogFacade
from open311_api.services.catalog import ServiceCatalog
from open311_api.services.request_registry import RequestFilter, RequestRegistry

router = APIRouter(tags=["requests"])


def _describe_validation_error(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


def _api_key_matches(candidate: str, expected: str) -> bool:
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


@router.post(
    "/requests.json",
    response_model=list[ServiceRequest],
    response_model_exclude_none=True,
    status_code=201,
)
async def create_request(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    catalog: ServiceCatalog = Depends(get_catalog),
    registry: RequestRegistry = Depends(get_registry),
    log: LogFacade = Depends(get_log),
) -> list[ServiceRequest]:
    body = await request.body()
    try:
        # A JSON null decodes to an empty submission, which then fails auth.
        if body.strip() == b"null":
            payload = ServiceRequestInput()
        else:
            payload = ServiceRequestInput.model_validate_json(body, strict=True)
    except ValidationError as exc:
        raise ApiError(400, f"Invalid request payload: {_describe_validation_error(exc)}") from exc

    if not _api_key_matches(payload.api_key, settings.api_key):
        log.warning(
            "Unauthorized API key attempt from %s for service %s",
            remote_addr(request),
            payload.service_code,
        )
        raise ApiError(401, "Invalid or missing API key.")
    if not payload.service_code:
        raise ApiError(400, "service_code is required.")

    service = catalog.lookup(payload.service_code)
    if service is None:
        raise ApiError(400, "Invalid service_code.")
    if not payload.has_location:
        raise ApiError(400, "Either lat/long or address_string is required.")

    record = registry.create(payload, service, now=datetime.now(timezone.utc))
    log.info(
        "Created request: %s for service: %s by user: %s",
        record.service_request_id,
        record.service_code,
        payload.email,
    )
    return [record]


@router.get(
    "/requests.json",
    response_model=list[ServiceRequest],
    response_model_exclude_none=True,
)
def list_requests(
    service_code: str | None = None,
    status: str | None = None,
    registry: RequestRegistry = Depends(get_registry),
    log: LogFacade = Depends(get_log),
) -> list[ServiceRequest]:
    results = registry.scan(RequestFilter(service_code=service_code, status=status))
    log.info(
        "Listed %d requests. Filters: service_code=%s, status=%s",
        len(results),
        service_code or "",
        status or "",
    )
    return results


@router.get(
    "/requests/{service_request_id}.json",
    response_model=list[ServiceRequest],
    response_model_exclude_none=True,
)
def get_request(
    service_request_id: str,
    registry: RequestRegistry = Depends(get_registry),
) -> list[ServiceRequest]:
    record = registry.get(service_request_id)
    if record is None:
        raise ApiError(404, f"Service request not found: {service_request_id}")
    return [record]
