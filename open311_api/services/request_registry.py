from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from threading import Lock

from open311_api.models.schemas import Service, ServiceRequest, ServiceRequestInput


INITIAL_STATUS_NOTES = "Request received and is pending review."


@dataclass(frozen=True)
class RequestFilter:
    """Exact-match predicates for `scan`; an empty value matches anything."""

    service_code: str | None = None
    status: str | None = None

    def matches(self, record: ServiceRequest) -> bool:
        if self.service_code and record.service_code != self.service_code:
            return False
        if self.status and record.status != self.status:
            return False
        return True


def format_request_id(counter: int) -> str:
    return f"SR{counter:06d}"


def agency_for(service: Service) -> str:
    return f"City Department of {service.group}"


class RequestRegistry:
    """Thread-safe, process-local service request store (lost on restart).

    A single lock guards both the id counter and the mapping, and every
    operation holds it for its whole duration. Records handed out are copies.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._counter: int = 0
        self._requests: dict[str, ServiceRequest] = {}

    def create(self, payload: ServiceRequestInput, service: Service, now: datetime) -> ServiceRequest:
        coordinates = payload.lat != 0 or payload.long != 0
        with self._lock:
            counter = self._counter + 1
            record = ServiceRequest(
                service_request_id=format_request_id(counter),
                status="open",
                status_notes=INITIAL_STATUS_NOTES,
                service_name=service.service_name,
                service_code=service.service_code,
                description=payload.description or None,
                agency_responsible=agency_for(service),
                requested_datetime=now,
                updated_datetime=now,
                address=payload.address_string or None,
                lat=payload.lat if coordinates else None,
                long=payload.long if coordinates else None,
                media_url=payload.media_url or None,
            )
            self._counter = counter
            self._requests[record.service_request_id] = record
            return record.model_copy()

    def get(self, service_request_id: str) -> ServiceRequest | None:
        with self._lock:
            record = self._requests.get(service_request_id)
            return record.model_copy() if record is not None else None

    def scan(self, request_filter: RequestFilter | None = None) -> list[ServiceRequest]:
        request_filter = request_filter or RequestFilter()
        with self._lock:
            return [record.model_copy() for record in self._requests.values() if request_filter.matches(record)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)
