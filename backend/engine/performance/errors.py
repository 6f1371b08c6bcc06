"""Error taxonomy for report generation.

``ReportError`` subclasses abort a report invocation.  Insufficient
last-day data is *not* an error: the classifier flags the feeder and the
run continues without it.
"""

from __future__ import annotations


class ReportError(Exception):
    """Base class for conditions that abort a report run."""


class InvalidRange(ReportError):
    """End date precedes start date."""

    def __init__(self, start, end):
        self.start = start
        self.end = end
        super().__init__(f"End date {end} precedes start date {start}")


class TemplateMissing(ReportError):
    """Base workbook or its performance sheet could not be found."""


class NoFeedersFound(ReportError):
    """The feeder selection for a report is empty."""


class LookupNotFound(ReportError):
    """A named region or business hub filter does not resolve."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} '{name}' not found")
