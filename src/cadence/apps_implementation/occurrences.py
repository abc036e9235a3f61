#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Single-occurrence edits of a generated series and the presentation
descriptor of recurring occurrences."""

import datetime
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from cadence.apps_implementation.exceptions import (
    OccurrenceIndexError,
    ParseError,
    RecurrenceDefinitionError,
)
from cadence.apps_implementation.recurrence import Occurrence
from cadence.apps_implementation.time_utils import EventFrequency

SERIES_ID_SEPARATOR = "-series-"
"""Separates the frequency prefix from the anchor date in series IDs."""
IDENTITY_FIELDS = frozenset({"occurrence_id", "series_id", "sequence_index", "kind"})
"""Fields which tie an occurrence to its series and cannot be edited."""

logger = logging.getLogger(__name__)


def _today() -> datetime.date:
    return datetime.date.today()


def _get_occurrence(sequence: Sequence[Occurrence], index: int) -> Occurrence:
    # negative indices are rejected rather than counted from the end
    if not 0 <= index < len(sequence):
        raise OccurrenceIndexError(
            f"Occurrence index {index} is out of range for a series of "
            f"{len(sequence)} occurrences"
        )
    return sequence[index]


def modify_occurrence(
    sequence: Sequence[Occurrence],
    index: int,
    changes: Mapping[str, Any] | None = None,
    on: datetime.date | None = None,
) -> Occurrence:
    """Edit a single occurrence of a series.

    Parameters
    ----------
    sequence
        The generated series. It is not modified.
    index
        The position of the occurrence to edit.
    changes
        Field values overlaid on the occurrence (eg `{"title": "Moved"}`).
        Passing `{"is_recurring": False}` detaches the occurrence from
        its series while preserving its `series_id`.
        The identity fields (`occurrence_id`, `series_id`, `sequence_index`
        and `kind`) cannot be changed.
    on
        The modification date. Defaults to today.

    Returns
    -------
    A new occurrence marked as modified.
    """
    original = _get_occurrence(sequence, index)
    changes = dict(changes or {})
    unknown = set(changes) - set(Occurrence.model_fields)
    if unknown:
        raise RecurrenceDefinitionError(
            f"Cannot modify unknown occurrence fields: {', '.join(sorted(unknown))}"
        )
    frozen = IDENTITY_FIELDS & set(changes)
    if frozen:
        raise RecurrenceDefinitionError(
            f"Cannot modify the series identity of an occurrence: {', '.join(sorted(frozen))}"
        )
    record = original.model_dump()
    record.update(changes)
    record["is_modified"] = True
    record["modification_date"] = on or _today()
    try:
        modified = Occurrence.model_validate(record)
    except ValidationError as e:
        raise RecurrenceDefinitionError(
            f"Invalid changes for occurrence {original.occurrence_id}: {e}"
        ) from e
    logger.debug(f"Modified occurrence {modified.occurrence_id}")
    return modified


def delete_occurrence(
    sequence: Sequence[Occurrence], index: int, on: datetime.date | None = None
) -> Occurrence:
    """Return a tombstoned copy of a single occurrence. The series itself,
    including the deleted occurrence's siblings, is left untouched."""
    original = _get_occurrence(sequence, index)
    return original.model_copy(
        update={"is_deleted": True, "deletion_date": on or _today()}
    )


class RecurrenceDescriptor(BaseModel):
    """How a recurring occurrence is presented in calendar views."""

    model_config = ConfigDict(frozen=True)

    should_show: bool
    kind: EventFrequency | None = None
    label: str | None = None
    color: str | None = None


HIDDEN = RecurrenceDescriptor(should_show=False)

_DESCRIPTORS = {
    EventFrequency.DAILY: RecurrenceDescriptor(
        should_show=True,
        kind=EventFrequency.DAILY,
        label="Repeats daily",
        color="#10B981",
    ),
    EventFrequency.WEEKLY: RecurrenceDescriptor(
        should_show=True,
        kind=EventFrequency.WEEKLY,
        label="Repeats weekly",
        color="#8B5CF6",
    ),
    EventFrequency.MONTHLY: RecurrenceDescriptor(
        should_show=True,
        kind=EventFrequency.MONTHLY,
        label="Repeats monthly",
        color="#3B82F6",
    ),
    EventFrequency.YEARLY: RecurrenceDescriptor(
        should_show=True,
        kind=EventFrequency.YEARLY,
        label="Repeats yearly",
        color="#F59E0B",
    ),
}


def series_kind(series_id: str) -> EventFrequency:
    """Recover the frequency encoded in a series ID."""
    prefix, separator, _ = series_id.partition(SERIES_ID_SEPARATOR)
    if not separator:
        raise ParseError(f"Not a recurring series ID: {series_id!r}")
    try:
        return EventFrequency(prefix)
    except ValueError as e:
        raise ParseError(f"Unknown frequency in series ID {series_id!r}") from e


def recurrence_descriptor(occurrence: Occurrence) -> RecurrenceDescriptor:
    """Look up the icon shown next to an occurrence. Occurrences which no longer
    recur, deleted occurrences and unrecognised series are hidden."""
    if not occurrence.is_recurring or occurrence.is_deleted:
        return HIDDEN
    try:
        kind = series_kind(occurrence.series_id)
    except ParseError:
        return HIDDEN
    return _DESCRIPTORS[kind]
