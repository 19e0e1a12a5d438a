"""Estimate intake error handling.

Custom exceptions and error codes for the intake flow and its gateways.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Configuration Errors
    MISSING_CONTRACTOR_ID = "MISSING_CONTRACTOR_ID"

    # Lead Store Errors
    LEAD_INSERT_FAILED = "LEAD_INSERT_FAILED"
    LEAD_UPDATE_FAILED = "LEAD_UPDATE_FAILED"
    LEAD_QUERY_FAILED = "LEAD_QUERY_FAILED"
    LEAD_MISSING_ID = "LEAD_MISSING_ID"
    CATEGORY_LOAD_FAILED = "CATEGORY_LOAD_FAILED"

    # Estimate Job Errors
    ESTIMATE_JOB_FAILED = "ESTIMATE_JOB_FAILED"
    ESTIMATE_JOB_TIMEOUT = "ESTIMATE_JOB_TIMEOUT"


class EstimateFlowError(Exception):
    """Base exception for estimate intake errors.

    Provides structured error information for notifications and logs.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize EstimateFlowError.

        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"EstimateFlowError(code={self.code!r}, message={self.message!r})"


class ConfigurationError(EstimateFlowError):
    """Missing or invalid flow configuration."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            code=ErrorCode.MISSING_CONTRACTOR_ID,
            message=message,
            details={"field": field} if field else None
        )


class GatewayError(EstimateFlowError):
    """Normalized failure from a backend gateway.

    Every backend exception is converted to this shape at the gateway
    boundary, so callers only ever see ``kind`` and ``message``.
    """

    def __init__(
        self,
        kind: str,
        message: str,
        details: Optional[Dict] = None
    ):
        super().__init__(code=kind, message=message, details=details)

    @property
    def kind(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"GatewayError(kind={self.kind!r}, message={self.message!r})"
