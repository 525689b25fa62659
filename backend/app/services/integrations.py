"""
HTTP clients for the collaborating services: user identity, appointment
schedule, and address book.

Each lookup raises IntegrationError on transport, HTTP, or decoding failure.
A client without a configured base URL is disabled and resolves to None.
The aggregation engine decides how to degrade; clients never retry.
"""
import logging
from datetime import datetime
from typing import Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.config import settings
from ..core.exceptions import IntegrationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class UserIdentity(BaseModel):
    """User record owned by the user service."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    is_active: bool = Field(default=True, alias="isActive")

    @property
    def full_name(self) -> Optional[str]:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else None


class AppointmentDetail(BaseModel):
    """Appointment record owned by the schedule service."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    doctor_id: Optional[str] = Field(default=None, alias="doctorId")
    scheduled_at: Optional[datetime] = Field(default=None, alias="scheduledDateTime")
    duration_minutes: Optional[int] = Field(default=None, alias="durationMinutes")
    status: Optional[str] = None  # SCHEDULED, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED
    notes: Optional[str] = None


class AddressDetail(BaseModel):
    """Address record owned by the address service."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: Optional[str] = None  # HOME, WORK, OTHER
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = Field(default=None, alias="postalCode")
    is_default: bool = Field(default=False, alias="isDefault")


class ServiceClient:
    """Shared GET-and-decode logic for one collaborating service."""

    service_name = "service"

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def _get(self, path: str, model: Type[M]) -> Optional[M]:
        if not self.enabled:
            logger.debug("%s not configured, skipping %s", self.service_name, path)
            return None

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                resp = await client.get(path, headers=headers)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as exc:
            raise IntegrationError(
                f"{self.service_name} request {path} failed: {exc}",
                source=self.service_name,
                cause=exc,
            ) from exc
        except ValueError as exc:
            raise IntegrationError(
                f"{self.service_name} returned a non-JSON body for {path}",
                source=self.service_name,
                cause=exc,
            ) from exc

        # Some deployments wrap payloads as {"data": {...}, "message": ...}
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise IntegrationError(
                f"{self.service_name} returned an unexpected payload for {path}",
                source=self.service_name,
                cause=exc,
            ) from exc


class UserServiceClient(ServiceClient):
    service_name = "user-service"

    async def get_user(self, user_id: str) -> Optional[UserIdentity]:
        return await self._get(f"/api/v1/users/{user_id}", UserIdentity)


class ScheduleServiceClient(ServiceClient):
    service_name = "schedule-service"

    async def get_appointment(self, appointment_id: str) -> Optional[AppointmentDetail]:
        return await self._get(f"/api/v1/appointments/{appointment_id}", AppointmentDetail)


class AddressServiceClient(ServiceClient):
    service_name = "address-service"

    async def get_address(self, address_id: str) -> Optional[AddressDetail]:
        return await self._get(f"/api/v1/addresses/{address_id}", AddressDetail)


def default_clients():
    """Build the three clients from application settings."""
    common = {"api_key": settings.INTEGRATION_API_KEY, "timeout": settings.INTEGRATION_TIMEOUT}
    return (
        UserServiceClient(settings.USER_SERVICE_URL, **common),
        ScheduleServiceClient(settings.SCHEDULE_SERVICE_URL, **common),
        AddressServiceClient(settings.ADDRESS_SERVICE_URL, **common),
    )
