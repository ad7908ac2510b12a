"""Shared error classes for lead analysis and proof fetching."""

from __future__ import annotations


class LeadValidationError(RuntimeError):
    """Base exception raised by the lead validation services."""

    def __init__(self, message: str, code: str = "LEAD_VALIDATION_ERROR") -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(LeadValidationError):
    """Raised when a required credential or secret is absent or malformed."""

    def __init__(self, message: str, code: str = "500_CONFIGURATION") -> None:
        super().__init__(message, code=code)


class InputError(LeadValidationError):
    """Raised when a required request field is missing."""

    def __init__(self, message: str, code: str = "400_INVALID_LEAD") -> None:
        super().__init__(message, code=code)


class UpstreamError(LeadValidationError):
    """Raised when a collaborator call fails or returns no usable data."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        code: str = "502_UPSTREAM",
    ) -> None:
        super().__init__(message, code=code)
        self.status_code = status_code
        self.body = body


class ParseError(LeadValidationError):
    """Raised when a collaborator response is not valid structured data."""

    def __init__(self, message: str, *, raw: str | None = None, code: str = "502_MALFORMED_RESPONSE") -> None:
        super().__init__(message, code=code)
        self.raw = raw
