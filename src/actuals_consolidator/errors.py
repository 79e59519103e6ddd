"""Error taxonomy for consolidation runs.

Every structural problem is detected while sources are being prepared and
raised as a :class:`ConsolidationError` subclass.  Row-level skips (blank
account, non-numeric value) are not errors and never raise.
"""

from __future__ import annotations


class ConsolidationError(ValueError):
    """Base class for user-correctable consolidation failures.

    *label* names the offending source position and field, e.g.
    ``"File 2 Entity range"``; it is prefixed to the message when given.
    """

    def __init__(self, message: str, *, label: str | None = None) -> None:
        self.label = label
        self.detail = message
        super().__init__(f"{label}: {message}" if label else message)


class ConfigurationError(ConsolidationError):
    """Missing file/sheet/range, or a source count outside the allowed bounds."""


class RangeSyntaxError(ConsolidationError):
    """Address or range text that cannot be parsed, or decodes to no cells."""


InvalidRange = RangeSyntaxError


class RangeOutOfBounds(ConsolidationError):
    """A well-formed range that falls outside the worksheet grid."""


class ShapeMismatch(ConsolidationError):
    """Range dimensions incompatible with the Value range."""


class MultiColumnConflict(ConsolidationError):
    """Wrong number of multi-column axes for the Value range width."""


class RunInProgressError(ConsolidationError):
    """A run was requested while another one is still executing."""
