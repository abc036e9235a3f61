#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Expand a recurrence rule into the concrete dates on which a recurring
event occurs.

The expansion is a pure function of the rule: no state is kept between calls
and the rule is never modified, so the same rule always yields the same
occurrences."""

import datetime
import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum, auto
from itertools import islice
from typing import Any, Self

from dateutil import rrule
from pydantic import BaseModel, ConfigDict, field_serializer

from cadence.apps_implementation.exceptions import (
    ParseError,
    RecurrenceDefinitionError,
)
from cadence.apps_implementation.time_utils import (
    EventFrequency,
    as_date,
    format_date,
    is_last_day_of_month,
)

MAX_OCCURRENCES = 1000
"""Hard cap on the number of occurrences generated for a single rule."""
SHORTEST_MONTH = 28
LONGEST_MONTH = 31

logger = logging.getLogger(__name__)


class MonthlyShortMonthPolicy(StrEnum):
    """What a monthly series anchored on the 31st does in months without a 31st."""

    SKIP = auto()
    CLAMP_TO_MONTH_END = auto()


class YearlyFeb29Policy(StrEnum):
    """What a yearly series anchored on Feb 29 does in common years."""

    LEAP_ONLY = auto()
    LEAP_400_ONLY = auto()
    CLAMP_TO_FEB_28 = auto()


# legacy spellings accepted in rule configs
_ENUM_ALIASES: dict[str, StrEnum] = {
    "clip": YearlyFeb29Policy.CLAMP_TO_FEB_28,
    "adjusttoend": MonthlyShortMonthPolicy.CLAMP_TO_MONTH_END,
}


def _normalise(value: Any) -> str:
    return re.sub(r"[\s_-]", "", str(value)).lower()


def _parse_enum(enum_cls: type[StrEnum], value: Any) -> Any:
    """Resolve `value` to a member of `enum_cls`, ignoring case, dashes and
    underscores (eg "LeapOnly", "leap-only" and "LEAP_ONLY" are equivalent)."""
    if isinstance(value, enum_cls):
        return value
    key = _normalise(value)
    for member in enum_cls:
        if _normalise(member.value) == key:
            return member
    alias = _ENUM_ALIASES.get(key)
    if isinstance(alias, enum_cls):
        return alias
    allowed = ", ".join(m.value for m in enum_cls)
    raise ParseError(
        f"Invalid {enum_cls.__name__} {value!r}, expected one of: {allowed}"
    )


@dataclass(frozen=True)
class RecurrencePolicies:
    """Policies resolving dates which do not exist in every period.

    Parameters
    ----------
    monthly_short_month_policy
        Applies to monthly series anchored on the 31st. `SKIP` omits months
        without a 31st, `CLAMP_TO_MONTH_END` moves the occurrence to the last
        day of such months.
    yearly_feb29_policy
        Applies to yearly series anchored on Feb 29. `LEAP_ONLY` recurs in leap
        years only, `LEAP_400_ONLY` only in years divisible by 400 and
        `CLAMP_TO_FEB_28` recurs every year, on Feb 28 in common years.
    """

    monthly_short_month_policy: MonthlyShortMonthPolicy = MonthlyShortMonthPolicy.SKIP
    yearly_feb29_policy: YearlyFeb29Policy = YearlyFeb29Policy.LEAP_ONLY

    def __post_init__(self):
        # frozen dataclass, so coercion goes through object.__setattr__
        object.__setattr__(
            self,
            "monthly_short_month_policy",
            _parse_enum(MonthlyShortMonthPolicy, self.monthly_short_month_policy),
        )
        object.__setattr__(
            self,
            "yearly_feb29_policy",
            _parse_enum(YearlyFeb29Policy, self.yearly_feb29_policy),
        )


@dataclass(frozen=True)
class Horizon:
    """When a series stops recurring.

    Parameters
    ----------
    end_date
        The last date (inclusive) on which the series may occur.
    max_occurrences
        The maximum number of occurrences, including the anchor. When both
        fields are set, whichever is reached first ends the series. When
        neither is set, the series is cut at `MAX_OCCURRENCES`.
    """

    end_date: datetime.date | None = None
    max_occurrences: int | None = None

    def __post_init__(self):
        if self.end_date is not None:
            object.__setattr__(self, "end_date", as_date(self.end_date))
        if self.max_occurrences is not None:
            if isinstance(self.max_occurrences, bool) or not isinstance(
                self.max_occurrences, int
            ):
                raise RecurrenceDefinitionError(
                    f"max_occurrences must be an integer, got {self.max_occurrences!r}"
                )
            if self.max_occurrences <= 0:
                raise RecurrenceDefinitionError(
                    f"max_occurrences must be positive, got {self.max_occurrences}"
                )

    @property
    def finite(self) -> bool:
        return any([self.max_occurrences is not None, self.end_date is not None])

    @property
    def limit(self) -> int:
        if self.max_occurrences is None:
            return MAX_OCCURRENCES
        return min(self.max_occurrences, MAX_OCCURRENCES)


@dataclass(frozen=True)
class RecurrenceRule:
    """
    A rule describing how an event recurs.

    Parameters
    ----------
    anchor_date
        The date of the first occurrence. Its day of the month (monthly series) or
        month and day (yearly series) is the pattern later occurrences replicate.
    kind
        How often the event occurs.
    interval
        Number of `kind` units between occurrences. For example, a WEEKLY rule with
        an interval of 2 occurs every 14 days.
    horizon
        When the series stops.
    policies
        How dates missing from some months or years are handled.

    Notes
    -----
    The anchor date is always the first occurrence, regardless of the horizon
    and the policies.
    """

    anchor_date: datetime.date
    kind: EventFrequency
    interval: int = 1
    horizon: Horizon = field(default_factory=Horizon)
    policies: RecurrencePolicies = field(default_factory=RecurrencePolicies)

    def __post_init__(self):
        object.__setattr__(self, "anchor_date", as_date(self.anchor_date))
        object.__setattr__(self, "kind", _parse_enum(EventFrequency, self.kind))
        if isinstance(self.interval, bool) or not isinstance(self.interval, int):
            raise RecurrenceDefinitionError(
                f"interval must be an integer, got {self.interval!r}"
            )
        if self.interval < 1:
            raise RecurrenceDefinitionError(
                f"interval must be at least 1, got {self.interval}"
            )

    @property
    def series_id(self) -> str:
        return f"{self.kind}-series-{format_date(self.anchor_date)}"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> Self:
        """Build a rule from its wire representation, eg

            {"anchorDate": "2025-01-31", "kind": "monthly", "interval": 1,
             "endDate": "2025-06-30", "maxOccurrences": 10,
             "policies": {"monthlyShortMonthPolicy": "skip"}}

        Snake case keys (`anchor_date`, `end_date`, ...) are accepted too.
        """

        def get(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in config and config[key] is not None:
                    return config[key]
            return default

        anchor = get("anchorDate", "anchor_date", "startDate", "start_date")
        if anchor is None:
            raise RecurrenceDefinitionError("A recurrence rule requires an anchor date")
        kind = get("kind", "repeatType", "repeat_type")
        if kind is None:
            raise RecurrenceDefinitionError("A recurrence rule requires a kind")
        policies = get("policies", default={})
        return cls(
            anchor_date=anchor,
            kind=kind,
            interval=get("interval", default=1),
            horizon=Horizon(
                end_date=get("endDate", "end_date"),
                max_occurrences=get("maxOccurrences", "max_occurrences"),
            ),
            policies=RecurrencePolicies(
                monthly_short_month_policy=policies.get(
                    "monthlyShortMonthPolicy",
                    policies.get(
                        "monthly_short_month_policy", MonthlyShortMonthPolicy.SKIP
                    ),
                ),
                yearly_feb29_policy=policies.get(
                    "yearlyFeb29Policy",
                    policies.get("yearly_feb29_policy", YearlyFeb29Policy.LEAP_ONLY),
                ),
            ),
        )


class Occurrence(BaseModel):
    """A single date of a recurring series.

    Parameters
    ----------
    occurrence_id
        Identifier unique within the series, `{kind}-{sequence_index}-{anchor_date}`.
    date
        The calendar date on which the occurrence happens.
    series_id
        Shared by all occurrences generated from one rule, `{kind}-series-{anchor_date}`.
    sequence_index
        0-based position in the generated series.
    is_recurring
        Set to `False` once the occurrence has been detached from its series.
    is_modified, modification_date
        Set when a single occurrence is edited.
    is_deleted, deletion_date
        Set when a single occurrence is deleted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    occurrence_id: str
    date: datetime.date
    kind: EventFrequency
    series_id: str
    sequence_index: int
    title: str | None = None
    description: str | None = None
    is_recurring: bool = True
    is_modified: bool = False
    modification_date: datetime.date | None = None
    is_deleted: bool = False
    deletion_date: datetime.date | None = None

    @field_serializer("date", "modification_date", "deletion_date")
    def serialise_date(self, d: datetime.date | None) -> str | None:
        if d is None:
            return
        return format_date(d)

    def to_wire(self) -> dict[str, Any]:
        return {
            "date": format_date(self.date),
            "seriesId": self.series_id,
            "sequenceIndex": self.sequence_index,
        }


_RRULE_FREQUENCIES = {
    EventFrequency.DAILY: rrule.DAILY,
    EventFrequency.WEEKLY: rrule.WEEKLY,
    EventFrequency.MONTHLY: rrule.MONTHLY,
    EventFrequency.YEARLY: rrule.YEARLY,
}


def _is_feb29(d: datetime.date) -> bool:
    return d.month == 2 and d.day == 29


def _monthly_params(rule: RecurrenceRule) -> dict[str, Any]:
    """Where a monthly occurrence falls in months shorter than the anchor's day."""
    anchor = rule.anchor_date
    if anchor.day == LONGEST_MONTH:
        match rule.policies.monthly_short_month_policy:
            case MonthlyShortMonthPolicy.SKIP:
                return {"bymonthday": LONGEST_MONTH}
            case MonthlyShortMonthPolicy.CLAMP_TO_MONTH_END:
                return {"bymonthday": -1}
    if is_last_day_of_month(anchor):
        return {"bymonthday": -1}
    if anchor.day > SHORTEST_MONTH:
        # latest existing day up to the anchor's day
        return {
            "bymonthday": list(range(SHORTEST_MONTH, anchor.day + 1)),
            "bysetpos": -1,
        }
    return {"bymonthday": anchor.day}


def _yearly_params(rule: RecurrenceRule) -> dict[str, Any]:
    if not _is_feb29(rule.anchor_date):
        return {}
    if rule.policies.yearly_feb29_policy == YearlyFeb29Policy.CLAMP_TO_FEB_28:
        return {"bymonth": 2, "bymonthday": [28, 29], "bysetpos": -1}
    # a Feb 29 dtstart only matches in leap years
    return {}


def _candidate_dates(rule: RecurrenceRule) -> Iterator[datetime.date]:
    """The anchor followed by the dates after it matched by the rule, up to the
    horizon end date. `rrule` stops by itself at the end of the calendar."""
    anchor = rule.anchor_date
    end_date = rule.horizon.end_date
    rule_params = {
        "freq": _RRULE_FREQUENCIES[rule.kind],
        "interval": rule.interval,
        "dtstart": datetime.datetime.combine(anchor, datetime.time()),
        "until": (
            datetime.datetime.combine(end_date, datetime.time())
            if end_date is not None
            else None
        ),
    }
    if rule.kind == EventFrequency.MONTHLY:
        rule_params |= _monthly_params(rule)
    elif rule.kind == EventFrequency.YEARLY:
        rule_params |= _yearly_params(rule)
    schedule = rrule.rrule(**{k: v for k, v in rule_params.items() if v is not None})
    dates = (occurrence.date() for occurrence in schedule)
    if (
        rule.kind == EventFrequency.YEARLY
        and _is_feb29(anchor)
        and rule.policies.yearly_feb29_policy == YearlyFeb29Policy.LEAP_400_ONLY
    ):
        dates = (d for d in dates if d.year % 400 == 0)
    yield anchor
    yield from (d for d in dates if d > anchor)


def occurrence_dates(rule: RecurrenceRule) -> list[datetime.date]:
    """The dates on which a series occurs, in ascending order.

    The anchor date is always returned first, even if the horizon end date
    precedes it. Otherwise dates after the end date are never returned and
    at most `rule.horizon.limit` dates are returned.
    """
    dates = list(islice(_candidate_dates(rule), rule.horizon.limit))
    if not rule.horizon.finite and len(dates) >= MAX_OCCURRENCES:
        logger.warning(
            f"Series {rule.series_id} has no end, truncated to {MAX_OCCURRENCES} occurrences"
        )
    return dates


def generate(rule: RecurrenceRule) -> tuple[Occurrence, ...]:
    """Expand a recurrence rule into its occurrences.

    Returns
    -------
    occurrences
        An immutable, date-ordered sequence whose first element is the rule's
        anchor date. All occurrences share the rule's `series_id`.
    """
    anchor = format_date(rule.anchor_date)
    occurrences = tuple(
        Occurrence(
            occurrence_id=f"{rule.kind}-{index}-{anchor}",
            date=d,
            kind=rule.kind,
            series_id=rule.series_id,
            sequence_index=index,
        )
        for index, d in enumerate(occurrence_dates(rule))
    )
    logger.debug(f"Generated {len(occurrences)} occurrences for {rule.series_id}")
    return occurrences


def generate_from_config(config: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Expand a rule given in its wire representation (see `RecurrenceRule.from_config`)
    and return the occurrences in wire format (`date`, `seriesId`, `sequenceIndex`)."""
    rule = RecurrenceRule.from_config(config)
    return [occurrence.to_wire() for occurrence in generate(rule)]
