#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
class ParseError(Exception):
    pass


class RecurrenceDefinitionError(Exception):
    """Raised when a recurrence rule or an occurrence update cannot be
    honoured because of the values supplied by the caller."""


class EventDefinitionError(Exception):
    pass


class OccurrenceIndexError(IndexError):
    pass


class SearchError(Exception):
    pass
