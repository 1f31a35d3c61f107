"""
HTTP client for the remote calendar platform.

Wraps ``httpx.AsyncClient`` with an explicit timeout, the platform's
``Version`` header, and a bearer token from a ``TokenProvider``. A 401 is
retried exactly once after asking the provider to refresh. Every transport
or HTTP failure is mapped to the package's error taxonomy here, so callers
never handle ``httpx`` exceptions.
"""

from datetime import datetime
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from booking_orchestrator.config import settings
from booking_orchestrator.clients.tokens import TokenProvider
from booking_orchestrator.errors import (
    AuthExpiredError,
    UpstreamError,
    UpstreamRequestError,
    UpstreamTimeoutError,
    UpstreamTransientError,
)
from booking_orchestrator.logging_context import get_call_logger

logger = get_call_logger(__name__)

# Appointment id locations seen in create-appointment responses, in priority order.
APPOINTMENT_ID_PATHS: tuple[tuple[str, ...], ...] = (
    ("id",),
    ("event", "id"),
    ("eventId",),
    ("appointment", "id"),
)


def _dig(data: Any, path: tuple[str, ...]) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def extract_appointment_id(data: Any) -> Optional[str]:
    """Return the first non-empty appointment id from a create response."""
    for path in APPOINTMENT_ID_PATHS:
        value = _dig(data, path)
        if value:
            return str(value)
    return None


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, list):
            message = "; ".join(str(m) for m in message)
        if message:
            return str(message)
    return str(body)[:200]


def _to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class CalendarApiClient:
    """Async client scoped to one location (sub-account)."""

    def __init__(
        self,
        location_id: str,
        tokens: TokenProvider,
        *,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.location_id = location_id
        self._tokens = tokens
        self._api_version = api_version or settings.api.api_version
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api.base_url,
            timeout=timeout_seconds if timeout_seconds is not None else settings.api.timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "CalendarApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    async def _send_once(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        token = await self._tokens.get_token(self.location_id)
        headers = {
            "Authorization": f"Bearer {token}",
            "Version": self._api_version,
            "Accept": "application/json",
        }
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError(f"{method} {path} timed out") from exc
        except httpx.TransportError as exc:
            raise UpstreamTransientError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 401:
            raise AuthExpiredError(f"{method} {path} unauthorized", status_code=401)
        if response.status_code >= 500:
            raise UpstreamTransientError(
                f"{method} {path} returned {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise UpstreamRequestError(
                f"{method} {path} returned {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
            )
        return response

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request, refreshing the credential and retrying once on a 401."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(2),
            retry=retry_if_exception_type(AuthExpiredError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info("Credential rejected for %s, refreshing and retrying", self.location_id)
                    await self._tokens.refresh(self.location_id)
                response = await self._send_once(method, path, **kwargs)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(f"{method} {path} returned a non-JSON body") from exc

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def get_free_slots(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
        timezone: str,
        user_id: Optional[str] = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "startDate": _to_millis(start),
            "endDate": _to_millis(end),
            "timezone": timezone,
        }
        if user_id:
            params["userId"] = user_id
        data = await self._request("GET", f"/calendars/{calendar_id}/free-slots", params=params)
        if not isinstance(data, dict):
            raise UpstreamError(f"Unexpected free-slots payload for calendar {calendar_id}")
        return data

    async def upsert_contact(
        self,
        email: str,
        first_name: str,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> str:
        """Create or update a contact keyed by email/phone and return its id."""
        payload: dict[str, Any] = {
            "locationId": self.location_id,
            "email": email,
            "firstName": first_name,
        }
        if last_name:
            payload["lastName"] = last_name
        if phone:
            payload["phone"] = phone
        data = await self._request("POST", "/contacts/upsert", json=payload)
        contact_id = _dig(data, ("contact", "id"))
        if not contact_id:
            raise UpstreamError("Contact upsert returned no contact id")
        return str(contact_id)

    async def create_appointment(
        self,
        calendar_id: str,
        contact_id: str,
        start_time: datetime,
        end_time: datetime,
        *,
        title: str,
        notes: Optional[str] = None,
        assigned_user_id: Optional[str] = None,
    ) -> str:
        payload: dict[str, Any] = {
            "calendarId": calendar_id,
            "locationId": self.location_id,
            "contactId": contact_id,
            "startTime": start_time.isoformat(),
            "endTime": end_time.isoformat(),
            "title": title,
            "appointmentStatus": "confirmed",
        }
        if notes:
            payload["notes"] = notes
        if assigned_user_id:
            payload["assignedUserId"] = assigned_user_id
        data = await self._request("POST", "/calendars/events/appointments", json=payload)
        appointment_id = extract_appointment_id(data)
        if not appointment_id:
            raise UpstreamError("Appointment created but no id was returned")
        return appointment_id

    async def add_appointment_note(self, appointment_id: str, body: str) -> None:
        await self._request(
            "POST", f"/calendars/appointments/{appointment_id}/notes", json={"body": body}
        )

    async def cancel_appointment(self, event_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/calendars/events/appointments/{event_id}")

    async def reschedule_appointment(
        self, event_id: str, start_time: datetime, end_time: datetime
    ) -> dict[str, Any]:
        return await self._request(
            "PUT",
            f"/calendars/events/appointments/{event_id}",
            json={"startTime": start_time.isoformat(), "endTime": end_time.isoformat()},
        )
