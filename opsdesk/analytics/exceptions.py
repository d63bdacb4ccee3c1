"""
Analytics Exceptions

Error taxonomy of the aggregation engine. Only caller-contract violations
leave the engine; record-level problems are recovered where they occur.
"""


class AnalyticsError(Exception):
    """Base class for analytics errors"""


class InvalidArgumentError(AnalyticsError, ValueError):
    """
    Caller supplied a value outside an accepted set.

    Rendered as HTTP 400 by the API layer.
    """

    def __init__(self, argument: str, value: object, allowed=None):
        self.argument = argument
        self.value = value
        self.allowed = list(allowed) if allowed is not None else None
        message = f"Invalid {argument} parameter: {value!r}"
        if self.allowed:
            message += f" (expected one of: {', '.join(self.allowed)})"
        super().__init__(message)


class MalformedRecordError(AnalyticsError, ValueError):
    """A single record carries a field that cannot be parsed."""

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"Malformed {field}: {value!r}")
