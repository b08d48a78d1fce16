"""Error taxonomy shared by the source adapters and the HTTP layer."""
from typing import Optional


class CompanySearchError(RuntimeError):
    """Base error for company search."""


class UpstreamUnavailable(CompanySearchError):
    """Raised on network failures and timeouts."""


class UpstreamRejected(CompanySearchError):
    """Raised when an upstream answers with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedUpstreamPayload(CompanySearchError):
    """Raised when a JSON body or embedded data block cannot be parsed."""


class InvalidRequest(CompanySearchError):
    """Raised for missing or malformed query input."""
