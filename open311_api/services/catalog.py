from __future__ import annotations

from collections.abc import Iterable

from open311_api.models.schemas import Service


DEFAULT_SERVICES = (
    {
        "service_code": "001",
        "service_name": "Pothole Repair",
        "description": "Report a pothole in a city street.",
        "type": "realtime",
        "keywords": ("pothole", "street", "road", "damage"),
        "group": "Streets",
    },
    {
        "service_code": "002",
        "service_name": "Graffiti Removal",
        "description": "Report graffiti on public or private property.",
        "type": "realtime",
        "keywords": ("graffiti", "vandalism", "paint"),
        "group": "Public Works",
    },
    {
        "service_code": "003",
        "service_name": "Broken Streetlight",
        "description": "Report a streetlight that is out or malfunctioning.",
        "type": "batch",
        "keywords": ("streetlight", "light", "outage"),
        "group": "Utilities",
    },
)


class ServiceCatalog:
    """Fixed, read-only set of services known for the process lifetime."""

    def __init__(self, services: Iterable[Service]) -> None:
        self._services = tuple(services)
        codes = [service.service_code for service in self._services]
        if len(set(codes)) != len(codes):
            raise ValueError("service codes must be unique within the catalog")

    def lookup(self, code: str) -> Service | None:
        for service in self._services:
            if service.service_code == code:
                return service
        return None

    def list_services(self) -> list[Service]:
        return list(self._services)

    def __len__(self) -> int:
        return len(self._services)


def seed_catalog(defaults: Iterable[dict] = DEFAULT_SERVICES) -> ServiceCatalog:
    return ServiceCatalog(Service.model_validate(config) for config in defaults)
