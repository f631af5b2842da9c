"""Exceptions raised by the dose engine."""


class DoseEngineError(Exception):
    """Base class for dose engine errors."""

    pass


class PreconditionError(DoseEngineError):
    """Raised when an operation is requested before its inputs exist or are valid.

    The requested operation is aborted before any state is mutated.
    """

    pass
