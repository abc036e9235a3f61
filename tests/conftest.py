#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
import datetime

import pytest

from cadence.apps_implementation.recurrence import (
    Horizon,
    Occurrence,
    RecurrenceRule,
    generate,
)
from cadence.apps_implementation.time_utils import EventFrequency
from cadence.apps_implementation.work_calendar import (
    EventForm,
    InMemoryEventRepository,
    RepeatInfo,
)


@pytest.fixture
def monthly_series() -> tuple[Occurrence, ...]:
    return generate(
        RecurrenceRule(
            anchor_date=datetime.date(2025, 1, 15),
            kind=EventFrequency.MONTHLY,
            horizon=Horizon(end_date=datetime.date(2025, 12, 31), max_occurrences=10),
        )
    )


@pytest.fixture
def daily_series() -> tuple[Occurrence, ...]:
    return generate(
        RecurrenceRule(
            anchor_date=datetime.date(2025, 1, 1),
            kind=EventFrequency.DAILY,
            horizon=Horizon(end_date=datetime.date(2025, 1, 10), max_occurrences=5),
        )
    )


@pytest.fixture
def weekly_form() -> EventForm:
    return EventForm(
        title="Team sync",
        date=datetime.date(2025, 1, 1),
        start_time=datetime.time(10, 0),
        end_time=datetime.time(10, 30),
        description="Weekly catch up",
        location="Room 4",
        repeat=RepeatInfo(
            kind=EventFrequency.WEEKLY, interval=1, end_date=datetime.date(2025, 1, 29)
        ),
    )


@pytest.fixture
def repository() -> InMemoryEventRepository:
    return InMemoryEventRepository()
