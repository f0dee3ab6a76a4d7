"""Custom exceptions for the OIDC client portal.

Exception Hierarchy:
    PortalError (base)
    ├── PortalConfigError (configuration issues)
    ├── AuthenticationError (no usable credential for the upstream API)
    └── UpstreamError (identity provider returned a failure)
"""

from __future__ import annotations


class PortalError(Exception):
    """Base exception for all portal errors.

    Attributes:
        message: Human-readable error description.
        details: Optional additional error details.

    Examples:
        >>> try:
        ...     clients = await service.get_visible_clients(cookies, groups)
        ... except PortalError as e:
        ...     logger.error("portal_error", error=str(e))
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """Initialize PortalError.

        Args:
            message: Human-readable error description.
            details: Optional additional error details for debugging.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class PortalConfigError(PortalError):
    """Exception raised for configuration errors.

    Raised when required settings such as the issuer URL are missing
    or malformed.
    """

    pass


class AuthenticationError(PortalError):
    """Exception raised when no credential is available for the upstream API.

    Attributes:
        reason: Specific reason for the failure (e.g., "missing_cookie").

    Examples:
        >>> raise AuthenticationError(
        ...     "Invalid auth token format",
        ...     reason="malformed_json",
        ... )
    """

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        details: str | None = None,
    ) -> None:
        """Initialize AuthenticationError.

        Args:
            message: Human-readable error description.
            reason: Specific reason for failure (e.g., "missing_cookie", "missing_token").
            details: Optional additional error details.
        """
        super().__init__(message, details)
        self.reason = reason

    def __str__(self) -> str:
        """Return string representation including reason."""
        base = super().__str__()
        if self.reason:
            return f"{base} (reason: {self.reason})"
        return base


class UpstreamError(PortalError):
    """Exception raised when the identity provider API call fails.

    Covers non-2xx responses, bodies that are not the expected JSON, and
    transport failures. ``status`` is None when no response was received.

    Attributes:
        status: HTTP status code of the failed response, if any.
        url: Requested URL.
        original_error: The underlying exception, if any.

    Examples:
        >>> raise UpstreamError(
        ...     "API request failed",
        ...     status=503,
        ...     url="https://id.example.com/api/oidc/clients",
        ... )
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        url: str | None = None,
        original_error: Exception | None = None,
        details: str | None = None,
    ) -> None:
        """Initialize UpstreamError.

        Args:
            message: Human-readable error description.
            status: HTTP status code of the failed response.
            url: Requested URL.
            original_error: The underlying exception that caused this error.
            details: Optional additional error details.
        """
        super().__init__(message, details)
        self.status = status
        self.url = url
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation including status or cause."""
        base = super().__str__()
        if self.status is not None:
            base = f"{base} (status: {self.status})"
        if self.original_error:
            base = f"{base} (caused by: {type(self.original_error).__name__})"
        return base
