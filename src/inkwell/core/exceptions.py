"""
Inkwell exception hierarchy.

All inkwell exceptions inherit from InkwellError, making it easy for consumers
to catch library-level errors while still distinguishing specific failure modes.
"""


class InkwellError(Exception):
    """Base exception class for all inkwell errors.

    ``stage`` names the pipeline stage an entry failed at, when the error was
    raised while processing an entry.
    """

    stage: str | None = None


class ConfigurationError(InkwellError):
    """Raised for configuration errors (missing keys, invalid values)."""


class InputError(InkwellError):
    """Raised for malformed queries or filters, before any work is done."""


class InvalidScopeError(InputError):
    """Raised when a retrieve query has a missing or unknown scope."""

    def __init__(self, scope: object = None):
        self.scope = scope
        super().__init__(f"Invalid scope {scope!r}. Must be one of: entries, chunks")


class NoUsableInputError(InkwellError):
    """Raised when aggregation has zero valid chunk analytics to work with."""


class ExternalCallError(InkwellError):
    """Raised when the scoring oracle or embedding provider fails."""


class PersistenceError(InkwellError):
    """Raised when a chunk/analytics store read or write fails."""


class NoDataForPeriodError(InkwellError):
    """Raised when a summary is requested for a period with no analytics."""

    def __init__(self, period: str):
        self.period = period
        super().__init__(f"No analytics data available for {period}")


class PipelineError(InkwellError):
    """Raised when an entry fails at a specific pipeline stage."""

    def __init__(self, message: str, stage: str | None = None):
        self.stage = stage
        super().__init__(message)


class EntryNotFoundError(PipelineError):
    """Raised when the entry source has no entry for the requested id."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Failed to load entry: {entry_id}", stage="loaded")
