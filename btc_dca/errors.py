"""Exception types raised by the calculator."""


class DcaError(Exception):
    """Base class for calculator errors."""


class IngestionError(DcaError):
    """Market data could not be fetched or is unusable for scoring.

    Covers transport failures, malformed payloads, too-short histories and
    zero-valued reference prices. No risk score is produced when raised.
    """


class InputValidationError(DcaError, ValueError):
    """User input rejected at the boundary (amounts, emails)."""
