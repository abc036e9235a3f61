#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
from collections.abc import Sequence

from cadence.apps_implementation.recurrence import (
    Horizon,
    MonthlyShortMonthPolicy,
    Occurrence,
    RecurrencePolicies,
    RecurrenceRule,
    YearlyFeb29Policy,
    generate,
)
from cadence.apps_implementation.time_utils import EventFrequency, format_date


def make_rule(
    anchor: str,
    kind: EventFrequency,
    end: str | None = None,
    max_occurrences: int | None = None,
    interval: int = 1,
    monthly_policy: MonthlyShortMonthPolicy = MonthlyShortMonthPolicy.SKIP,
    yearly_policy: YearlyFeb29Policy = YearlyFeb29Policy.LEAP_ONLY,
) -> RecurrenceRule:
    return RecurrenceRule(
        anchor_date=anchor,
        kind=kind,
        interval=interval,
        horizon=Horizon(end_date=end, max_occurrences=max_occurrences),
        policies=RecurrencePolicies(
            monthly_short_month_policy=monthly_policy,
            yearly_feb29_policy=yearly_policy,
        ),
    )


def dates_of(occurrences: Sequence[Occurrence]) -> list[str]:
    return [format_date(o.date) for o in occurrences]


def generated_dates(*args, **kwargs) -> list[str]:
    return dates_of(generate(make_rule(*args, **kwargs)))


def day_gaps(occurrences: Sequence[Occurrence]) -> set[int]:
    return {
        (later.date - earlier.date).days
        for earlier, later in zip(occurrences, occurrences[1:])
    }
