"""
Google Calendar store - events on one calendar via the Calendar v3 API.

Handles listing a time range and creating, updating and deleting events.
Task events carry the private extended property isTask = "true".
"""

import asyncio
import logging
from datetime import datetime, tzinfo

from googleapiclient.errors import HttpError

from taskcal import config
from taskcal.errors import RemoteError
from taskcal.schedule.models import CalendarEvent, EventSpec
from taskcal.schedule.normalizer import event_boundaries, format_wire, recurrence_rules

from .errors import TRANSPORT_ERRORS, translate_http_error, translate_transport_error
from .google_tasks import build_service

logger = logging.getLogger(__name__)

PAGE_SIZE = 250


def apply_event_spec(body: dict, spec: EventSpec, tz: tzinfo | None = None) -> dict:
    """Write an EventSpec onto a Calendar API event body, in place."""
    start, end = event_boundaries(spec.schedule, spec.duration_minutes, tz)
    body["summary"] = spec.title
    body["start"] = start
    body["end"] = end
    if spec.description:
        body["description"] = spec.description

    rules = recurrence_rules(spec.schedule.recurrence)
    if rules:
        body["recurrence"] = rules
    else:
        body.pop("recurrence", None)

    if spec.is_task_tagged:
        props = body.setdefault("extendedProperties", {})
        props.setdefault("private", {})[config.TASK_EVENT_PROPERTY] = "true"
    return body


class GoogleCalendarStore:
    """List, create, update and delete Google Calendar events."""

    def __init__(
        self,
        calendar_id: str | None = None,
        credentials=None,
        credentials_path: str | None = None,
        delegated_user: str | None = None,
        tz: tzinfo | None = None,
    ):
        """
        Args:
            calendar_id: Calendar to use. Defaults to config.CALENDAR_ID.
            credentials: Ready google-auth credentials. Takes precedence.
            credentials_path: Service account JSON. Defaults to config.
            delegated_user: User to impersonate. Defaults to config.
            tz: Zone timed picks are made in. None = system local.
        """
        self.calendar_id = calendar_id or config.CALENDAR_ID
        self.credentials = credentials
        self.credentials_path = credentials_path or config.SERVICE_ACCOUNT_FILE
        self.delegated_user = delegated_user or config.DELEGATED_USER
        self.tz = tz
        self._service = None

    def _get_service(self):
        """Get Calendar API service, built once."""
        if self._service:
            return self._service

        try:
            self._service = build_service(
                "calendar",
                "v3",
                config.CALENDAR_SCOPES,
                credentials=self.credentials,
                credentials_path=self.credentials_path,
                delegated_user=self.delegated_user,
            )
            return self._service
        except (ValueError, OSError) as e:
            logger.error(f"Failed to get Calendar service: {e}")
            raise RemoteError(f"Failed to get Calendar service: {e}", reason="permission") from e

    def _execute(self, request, action: str) -> dict:
        try:
            return request.execute() or {}
        except HttpError as e:
            raise translate_http_error(e, action) from e
        except TRANSPORT_ERRORS as e:
            raise translate_transport_error(e, action) from e

    # =========================================================================
    # Blocking calls
    # =========================================================================

    def _list_events(self, range_start: datetime, range_end: datetime) -> list[CalendarEvent]:
        service = self._get_service()
        events: list[CalendarEvent] = []
        page_token = None
        while True:
            data = self._execute(
                service.events().list(
                    calendarId=self.calendar_id,
                    timeMin=format_wire(range_start),
                    timeMax=format_wire(range_end),
                    singleEvents=True,
                    orderBy="startTime",
                    showDeleted=False,
                    maxResults=PAGE_SIZE,
                    pageToken=page_token,
                ),
                "List events",
            )
            events.extend(
                CalendarEvent.from_api(e, self.calendar_id) for e in data.get("items", []) if e.get("id")
            )
            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.info(f"Fetched {len(events)} events from {range_start.date()} to {range_end.date()}")
        return events

    def _create_event(self, spec: EventSpec) -> CalendarEvent:
        service = self._get_service()
        body = apply_event_spec({}, spec, self.tz)
        data = self._execute(
            service.events().insert(calendarId=self.calendar_id, body=body),
            "Create event",
        )
        logger.info(f"Created event {data.get('id')}: {spec.title}")
        return CalendarEvent.from_api(data, self.calendar_id)

    def _update_event(self, event_id: str, spec: EventSpec) -> CalendarEvent:
        service = self._get_service()

        # Get current event so untouched fields survive the update
        current = self._execute(
            service.events().get(calendarId=self.calendar_id, eventId=event_id),
            f"Get event {event_id}",
        )
        body = apply_event_spec(current, spec, self.tz)
        data = self._execute(
            service.events().update(calendarId=self.calendar_id, eventId=event_id, body=body),
            f"Update event {event_id}",
        )
        logger.info(f"Updated event {event_id}")
        return CalendarEvent.from_api(data, self.calendar_id)

    def _delete_event(self, event_id: str) -> None:
        service = self._get_service()
        self._execute(
            service.events().delete(calendarId=self.calendar_id, eventId=event_id),
            f"Delete event {event_id}",
        )
        logger.info(f"Deleted event {event_id}")

    # =========================================================================
    # Async API
    # =========================================================================

    async def list_events(self, range_start: datetime, range_end: datetime) -> list[CalendarEvent]:
        return await asyncio.to_thread(self._list_events, range_start, range_end)

    async def create_event(self, spec: EventSpec) -> CalendarEvent:
        return await asyncio.to_thread(self._create_event, spec)

    async def update_event(self, event_id: str, spec: EventSpec) -> CalendarEvent:
        return await asyncio.to_thread(self._update_event, event_id, spec)

    async def delete_event(self, event_id: str) -> None:
        await asyncio.to_thread(self._delete_event, event_id)
