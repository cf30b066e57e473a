from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


ServiceType = Literal["realtime", "batch", "blackbox"]
RequestStatus = Literal["open", "closed"]


class Service(BaseModel):
    model_config = ConfigDict(frozen=True)

    service_code: str
    service_name: str
    description: str
    # True when a service definition document exists; never the case here.
    metadata: bool = False
    type: ServiceType
    keywords: tuple[str, ...] = ()
    group: str


class ServiceRequestInput(BaseModel):
    """Body of POST /requests.json. Unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    api_key: str = ""
    service_code: str = ""
    lat: float = Field(default=0.0, allow_inf_nan=False)
    long: float = Field(default=0.0, allow_inf_nan=False)
    address_string: str = ""
    email: str = ""
    device_id: str = ""
    account_id: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    description: str = ""
    media_url: str = ""

    @property
    def has_location(self) -> bool:
        return not (self.lat == 0 and self.long == 0 and self.address_string == "")


class ServiceRequest(BaseModel):
    service_request_id: str = Field(pattern=r"^SR\d{6,}$")
    status: RequestStatus = "open"
    status_notes: str | None = None
    service_name: str
    service_code: str
    description: str | None = None
    agency_responsible: str | None = None
    service_notice: str | None = None
    requested_datetime: datetime
    updated_datetime: datetime
    expected_datetime: datetime | None = None
    address: str | None = None
    address_id: str | None = None
    zipcode: str | None = None
    lat: float | None = Field(default=None, allow_inf_nan=False)
    long: float | None = Field(default=None, allow_inf_nan=False)
    media_url: str | None = None


class ErrorResponse(BaseModel):
    error: str
    code: str


class HealthResponse(BaseModel):
    status: str
    requests: int
