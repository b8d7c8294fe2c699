"""
Shared error handling for the Authorization Accounts service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AuthorizationServiceException(Exception):
    """Base exception for the Authorization Accounts service."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class StartupFailure(AuthorizationServiceException):
    """Service cannot start: missing configuration or unreachable store."""

    status_code = 503

    def __init__(self, message: str = "Service startup failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("STARTUP_FAILURE", message, details)


class AccountNotFound(AuthorizationServiceException):
    """No credential record exists for the account identifier."""

    status_code = 404

    def __init__(self, account_id: str):
        super().__init__("ACCOUNT_NOT_FOUND", "Account not found", {"account_id": account_id})
        self.account_id = account_id


class QueryFailed(AuthorizationServiceException):
    """The credential store could not answer the query."""

    # Clients see the same response as AccountNotFound
    status_code = 404

    def __init__(self, detail: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("QUERY_FAILED", f"Failed to run query: {detail}", details)
        self.detail = detail
