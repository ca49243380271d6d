# =============================================================================
# resolution_core/errors/exceptions.py
# Custom Exception Hierarchy for the Resolution Tracker
# =============================================================================

from typing import Optional, Dict, Any


class ResolutionTrackerError(Exception):
    """
    Base exception for all Resolution Tracker errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "REMOTE_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "RT_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# STORAGE EXCEPTIONS
# =============================================================================

class StorageUnavailable(ResolutionTrackerError):
    """Raised when durable local storage cannot be opened or written"""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if path:
            details["path"] = path

        super().__init__(
            message=message,
            code="STORE_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# REMOTE STORE EXCEPTIONS
# =============================================================================

class RemoteError(ResolutionTrackerError):
    """Common base for failures talking to the remote store"""


class RemoteUnreachable(RemoteError):
    """Raised when a remote call fails outright (offline, DNS, timeout)"""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            code="REMOTE_001",
            details=details,
            **kwargs,
        )


class RemoteRejected(RemoteError):
    """Raised when a remote call completes with a non-success status"""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        operation: Optional[str] = None,
        detail: Any = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if status is not None:
            details["status"] = status
        if operation:
            details["operation"] = operation
        if detail is not None:
            details["response"] = detail

        super().__init__(
            message=message,
            code="REMOTE_002",
            details=details,
            **kwargs,
        )
        self.status = status


class MalformedRemoteRecord(RemoteError):
    """Raised when a fetched record lacks an expected field or has the wrong shape"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if record_id:
            details["record_id"] = record_id

        super().__init__(
            message=message,
            code="REMOTE_003",
            details=details,
            **kwargs,
        )
        self.field = field


# =============================================================================
# ASSET CACHE EXCEPTIONS
# =============================================================================

class CacheSeedError(ResolutionTrackerError):
    """Raised when the static cache generation cannot be seeded in full"""

    def __init__(
        self,
        message: str,
        generation: Optional[str] = None,
        failed_urls: Optional[list] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if generation:
            details["generation"] = generation
        if failed_urls:
            details["failed_urls"] = failed_urls

        super().__init__(
            message=message,
            code="CACHE_001",
            details=details,
            **kwargs,
        )
        self.failed_urls = list(failed_urls or [])


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(ResolutionTrackerError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )
