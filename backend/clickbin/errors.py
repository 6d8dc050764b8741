"""Error taxonomy for click binning and the analysis pipeline.

Every error is fail-fast: the operation raises before producing any output.
All errors also derive from ValueError so generic callers can catch them.
"""


class ClickBinError(ValueError):
    """Base class for all clickbin errors."""


class MissingFieldError(ClickBinError):
    """A click record lacks the requested field (or its value is not numeric)."""

    def __init__(self, field: str, index: int | None = None, detail: str | None = None):
        self.field = field
        self.index = index
        where = f" on click {index}" if index is not None else ""
        message = f"Missing field '{field}'{where}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidParameterError(ClickBinError):
    """A binning or analysis parameter is malformed."""


class ValueOutOfRangeError(InvalidParameterError):
    """A feature value falls outside the configured bin range under the "error" policy."""


class EmptyInputError(ClickBinError):
    """There is no data to operate on."""
