from __future__ import annotations

from fastapi import APIRouter, Depends

from open311_api.api.dependencies import get_catalog
from open311_api.models.schemas import Service
from open311_api.services.catalog import ServiceCatalog

router = APIRouter(tags=["services"])


@router.get("/services.json", response_model=list[Service])
def list_services(catalog: ServiceCatalog = Depends(get_catalog)) -> list[Service]:
    return catalog.list_services()
