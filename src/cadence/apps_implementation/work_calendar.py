#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Calendar events and the expansion of recurring events into series of event
records which can be stored in the user's calendar."""

import datetime
import logging
import uuid
from collections.abc import Iterable, Sequence
from typing import Protocol

from pydantic import BaseModel, Field

from cadence.apps_implementation.exceptions import EventDefinitionError, SearchError
from cadence.apps_implementation.recurrence import (
    Horizon,
    MonthlyShortMonthPolicy,
    RecurrencePolicies,
    RecurrenceRule,
    generate,
)
from cadence.apps_implementation.time_utils import EventFrequency, add_months

EventId = str

SERIES_MAX_OCCURRENCES = 100
PREVIEW_MAX_OCCURRENCES = 10
DEFAULT_SERIES_LENGTH_MONTHS = 12
DEFAULT_NOTIFICATION_MINUTES = 10
DEFAULT_CATEGORY = "Work"

logger = logging.getLogger(__name__)


class RepeatInfo(BaseModel):
    """How an event repeats.

    Parameters
    ----------
    kind
        The repetition frequency, `None` for events which do not repeat.
    interval
        Number of `kind` units between two instances.
    end_date
        The last date on which the event may repeat. When not set, series
        are generated for one year after the first instance.
    """

    kind: EventFrequency | None = None
    interval: int = 1
    end_date: datetime.date | None = None


class EventForm(BaseModel):
    """The details of an event as entered by the user, before it is saved."""

    title: str = ""
    date: datetime.date | None = None
    start_time: datetime.time | None = None
    end_time: datetime.time | None = None
    description: str = ""
    location: str = ""
    category: str = DEFAULT_CATEGORY
    repeat: RepeatInfo = Field(default_factory=RepeatInfo)
    notification_time: int = DEFAULT_NOTIFICATION_MINUTES

    @property
    def repeats(self) -> bool:
        return self.repeat.kind is not None


class Event(EventForm):
    """A calendar event.

    Parameters
    ----------
    event_id
        The unique ID of the event.
    is_recurring
        Whether the event is an instance of a recurring series.
    series_id
        Shared by all the instances of a recurring series. Not set for
        events which do not recur.
    """

    event_id: EventId
    is_recurring: bool = False
    series_id: str | None = None

    def __str__(self) -> str:
        starts_at = self.start_time.strftime("%H:%M") if self.start_time else "N/A"
        ends_at = self.end_time.strftime("%H:%M") if self.end_time else "N/A"
        display = f"'{self.title}' on {self.date} from {starts_at} to {ends_at}"
        if self.location:
            display += f" (location: {self.location})"
        return display


def validate_recurring_settings(form: EventForm) -> list[str]:
    """Check that a recurring event is fully specified.

    Returns
    -------
    errors
        Human-readable messages describing each problem, empty if the
        settings are valid.
    """
    errors = []
    if not form.repeats:
        errors.append("Choose how often the event repeats.")
    if form.date is None or form.start_time is None or form.end_time is None:
        errors.append("Enter the date, the start time and the end time.")
    if form.repeat.interval < 1:
        errors.append("The repeat interval must be at least 1.")
    if (
        form.repeat.end_date is not None
        and form.date is not None
        and form.repeat.end_date <= form.date
    ):
        errors.append("The repeat end date must be after the start date.")
    return errors


def _series_rule(form: EventForm, max_occurrences: int) -> RecurrenceRule:
    end_date = form.repeat.end_date
    if end_date is None:
        end_date = add_months(form.date, DEFAULT_SERIES_LENGTH_MONTHS)
        logger.info(f"No repeat end date specified, series will end on {end_date}")
    return RecurrenceRule(
        anchor_date=form.date,
        kind=form.repeat.kind,
        interval=form.repeat.interval,
        horizon=Horizon(end_date=end_date, max_occurrences=max_occurrences),
        policies=RecurrencePolicies(
            monthly_short_month_policy=MonthlyShortMonthPolicy.SKIP
        ),
    )


def _event_from_form(form: EventForm, **updates) -> Event:
    record = form.model_dump(include=set(EventForm.model_fields))
    record.update(updates)
    return Event(event_id=str(uuid.uuid4()), **record)


def expand_to_events(form: EventForm, max_occurrences: int) -> list[Event]:
    """Turn a form into the event records to be stored. A form which repeats
    is expanded into one event per occurrence, all sharing the same
    `series_id` and the details entered in the form."""
    if form.date is None:
        raise EventDefinitionError("Could not create an event without a date")
    if not form.repeats:
        return [_event_from_form(form)]
    occurrences = generate(_series_rule(form, max_occurrences))
    return [
        _event_from_form(
            form,
            date=occurrence.date,
            is_recurring=True,
            series_id=occurrence.series_id,
        )
        for occurrence in occurrences
    ]


def build_series(form: EventForm) -> list[Event]:
    """Generate the events of a recurring series, ready to be saved.

    Raises
    ------
    EventDefinitionError
        If the recurring settings of the form are invalid.
    """
    errors = validate_recurring_settings(form)
    if errors:
        raise EventDefinitionError(" ".join(errors))
    return expand_to_events(form, SERIES_MAX_OCCURRENCES)


def preview_series(form: EventForm) -> list[Event]:
    """The first few events of a recurring series, or an empty list
    if the form does not describe a valid recurring series."""
    errors = validate_recurring_settings(form)
    if errors:
        logger.debug(f"Nothing to preview: {' '.join(errors)}")
        return []
    return expand_to_events(form, PREVIEW_MAX_OCCURRENCES)


class EventRepository(Protocol):
    """Storage for calendar events."""

    def add(self, events: Sequence[Event]) -> None: ...

    def replace(self, event: Event) -> None: ...

    def remove(self, event_ids: Iterable[EventId]) -> None: ...

    def get(self, event_id: EventId) -> Event: ...

    def list_events(self) -> list[Event]: ...


class InMemoryEventRepository:
    """Keeps events in memory, in insertion order."""

    def __init__(self, events: Iterable[Event] | None = None):
        self._events: dict[EventId, Event] = {}
        if events is not None:
            self.add(list(events))

    def add(self, events: Sequence[Event]) -> None:
        for event in events:
            if event.event_id in self._events:
                raise EventDefinitionError(f"Event {event.event_id} already exists")
            self._events[event.event_id] = event

    def replace(self, event: Event) -> None:
        self.get(event.event_id)
        self._events[event.event_id] = event

    def remove(self, event_ids: Iterable[EventId]) -> None:
        event_ids = list(event_ids)
        for event_id in event_ids:
            self.get(event_id)
        for event_id in event_ids:
            del self._events[event_id]

    def get(self, event_id: EventId) -> Event:
        try:
            return self._events[event_id]
        except KeyError:
            raise SearchError(f"No event with ID {event_id}")

    def list_events(self) -> list[Event]:
        return list(self._events.values())


def save_event(repository: EventRepository, form: EventForm) -> list[Event]:
    """Add an event to the calendar. Recurring events are saved in bulk as
    a series of events, one for each occurrence.

    Returns
    -------
    The saved events.
    """
    if form.repeats:
        events = build_series(form)
    else:
        events = expand_to_events(form, SERIES_MAX_OCCURRENCES)
    repository.add(events)
    logger.info(f"Saved {len(events)} event(s) titled '{form.title}'")
    return events


def update_event(repository: EventRepository, event: Event) -> Event:
    """Update a single event. Instances of a series are updated independently
    of their siblings."""
    repository.replace(event)
    return event


def delete_event(repository: EventRepository, event_id: EventId):
    """Delete a single event from the calendar. Deleting an instance of a series
    does not affect the other instances."""
    event = repository.get(event_id)
    repository.remove([event_id])
    if event.is_recurring:
        logger.info(f"Deleted one instance of series {event.series_id}")


def _matches_weekly_cadence(event: Event, day: datetime.date) -> bool:
    if day < event.date:
        return False
    if event.repeat.end_date is not None and day > event.repeat.end_date:
        return False
    days_diff = (day - event.date).days
    return days_diff % (7 * max(event.repeat.interval, 1)) == 0


def events_for_day(events: Iterable[Event], day: datetime.date) -> list[Event]:
    """Find the events happening on a given day.

    Notes
    -----
    1. Weekly events saved without being expanded into a series (ie without a
    `series_id`) are matched on every day of their cadence up to their repeat
    end date.
    2. Each event is returned at most once.
    """
    found: dict[EventId, Event] = {}
    for event in events:
        if event.date == day:
            found.setdefault(event.event_id, event)
        elif (
            event.repeat.kind == EventFrequency.WEEKLY
            and event.series_id is None
            and event.date is not None
            and _matches_weekly_cadence(event, day)
        ):
            found.setdefault(event.event_id, event)
    return list(found.values())
