"""
Centralized Error Handling - Domain Service

Every failure the mapping pipeline reports is an immutable DomainError record
carried by a PolarMapDomainError (or one of its subclasses). Operator
cancellation is not a domain error; see RangeAcquisitionCancelled.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, Field


class ErrorSeverity(Enum):
    """Error severity levels for categorization and handling"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for proper handling and recovery"""
    VALIDATION = "validation"          # Precondition / input validation errors
    RESOURCE = "resource"              # Required data not available
    CONFIGURATION = "configuration"    # Configuration/setup errors
    INFRASTRUCTURE = "infrastructure"  # Storage and other external systems
    SYSTEM = "system"                  # Anything unclassified


class ErrorRecoveryStrategy(Enum):
    """Recovery strategies suggested to the caller"""
    NONE = "none"                     # No recovery possible
    RETRY = "retry"                   # Retry operation
    USER_INTERVENTION = "user"        # Requires operator action


class DomainError(BaseModel):
    """Immutable domain error representation"""
    code: str
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    recovery_strategy: ErrorRecoveryStrategy
    context: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}


@runtime_checkable
class ErrorLogger(Protocol):
    """Protocol for error logging - allows injection without dependencies"""
    def log_error(self, error: DomainError, exception: Optional[Exception] = None) -> None:
        ...


class LoggingErrorLogger:
    """ErrorLogger writing to the standard logging module, level by severity."""

    _LEVELS = {
        ErrorSeverity.LOW: logging.INFO,
        ErrorSeverity.MEDIUM: logging.WARNING,
        ErrorSeverity.HIGH: logging.ERROR,
        ErrorSeverity.CRITICAL: logging.CRITICAL,
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("polarmap.errors")

    def log_error(self, error: DomainError, exception: Optional[Exception] = None) -> None:
        self._logger.log(
            self._LEVELS[error.severity],
            "[%s] %s %s",
            error.code,
            error.message,
            error.context,
            exc_info=exception,
        )


_ERROR_DEFINITIONS: Dict[str, DomainError] = {
    "PRECONDITION_VIOLATED": DomainError(
        code="PRECONDITION_VIOLATED",
        message="Input arrays violate a precondition",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.HIGH,
        recovery_strategy=ErrorRecoveryStrategy.NONE
    ),
    "MISSING_INPUT": DomainError(
        code="MISSING_INPUT",
        message="Coherence analysis not found - run the coherence analysis first",
        category=ErrorCategory.RESOURCE,
        severity=ErrorSeverity.HIGH,
        recovery_strategy=ErrorRecoveryStrategy.USER_INTERVENTION
    ),
    "STORAGE_ERROR": DomainError(
        code="STORAGE_ERROR",
        message="HDF5 storage operation failed",
        category=ErrorCategory.INFRASTRUCTURE,
        severity=ErrorSeverity.HIGH,
        recovery_strategy=ErrorRecoveryStrategy.RETRY
    ),
    "CONFIGURATION_ERROR": DomainError(
        code="CONFIGURATION_ERROR",
        message="Invalid configuration",
        category=ErrorCategory.CONFIGURATION,
        severity=ErrorSeverity.MEDIUM,
        recovery_strategy=ErrorRecoveryStrategy.USER_INTERVENTION
    ),
}


class ErrorHandlingService:
    """
    Domain service for centralized error handling

    Builds DomainError records from the predefined error codes and converts
    caught exceptions into domain errors. Never retries anything itself.
    """

    def __init__(self, logger: Optional[ErrorLogger] = None):
        """
        Initialize error handler

        Args:
            logger: Optional error logger (injected dependency)
        """
        self._logger = logger
        self._error_definitions = dict(_ERROR_DEFINITIONS)

    def create_error(
        self,
        error_code: str,
        custom_message: Optional[str] = None,
        **context
    ) -> DomainError:
        """
        Create a domain error from predefined error code

        Args:
            error_code: Predefined error code
            custom_message: Optional custom message to override default
            **context: Additional context data

        Returns:
            DomainError instance
        """
        base_error = self._error_definitions.get(error_code)
        if base_error is None:
            base_error = DomainError(
                code=error_code,
                message=custom_message or f"Unknown error: {error_code}",
                category=ErrorCategory.SYSTEM,
                severity=ErrorSeverity.HIGH,
                recovery_strategy=ErrorRecoveryStrategy.NONE
            )

        return DomainError(
            code=base_error.code,
            message=custom_message if custom_message else base_error.message,
            category=base_error.category,
            severity=base_error.severity,
            recovery_strategy=base_error.recovery_strategy,
            context=context
        )

    def handle_exception(
        self,
        exception: Exception,
        error_code: str,
        custom_message: Optional[str] = None,
        **context
    ) -> DomainError:
        """
        Convert a caught exception into a domain error (and log it)

        Args:
            exception: The caught exception
            error_code: Domain error code to map to
            custom_message: Optional custom message
            **context: Additional context data

        Returns:
            DomainError with exception details
        """
        domain_error = self.create_error(
            error_code,
            custom_message,
            exception_type=type(exception).__name__,
            exception_message=str(exception),
            **context
        )

        if self._logger:
            self._logger.log_error(domain_error, exception)

        return domain_error

    def is_recoverable(self, error: DomainError) -> bool:
        """Check if error is recoverable"""
        return error.recovery_strategy != ErrorRecoveryStrategy.NONE

    def requires_user_intervention(self, error: DomainError) -> bool:
        """Check if error requires user intervention"""
        return error.recovery_strategy == ErrorRecoveryStrategy.USER_INTERVENTION

    def get_error_context(self, error: DomainError) -> Dict[str, Any]:
        """Get full error context for debugging/reporting"""
        return {
            "code": error.code,
            "message": error.message,
            "category": error.category.value,
            "severity": error.severity.value,
            "recovery_strategy": error.recovery_strategy.value,
            "timestamp": error.timestamp.isoformat(),
            "context": error.context
        }


# Domain Exception Classes

class PolarMapDomainError(Exception):
    """
    Base domain exception that wraps DomainError

    Accepts either a ready DomainError or a message plus context, in which
    case the record is built from the subclass' error_code.
    """

    error_code = "SYSTEM_ERROR"

    def __init__(self, domain_error: Union[DomainError, str, None] = None, **context):
        if not isinstance(domain_error, DomainError):
            domain_error = ErrorHandlingService().create_error(
                self.error_code, domain_error, **context
            )
        self.domain_error = domain_error
        super().__init__(domain_error.message)

    @property
    def code(self) -> str:
        return self.domain_error.code

    @property
    def category(self) -> ErrorCategory:
        return self.domain_error.category

    @property
    def severity(self) -> ErrorSeverity:
        return self.domain_error.severity

    @property
    def recovery_strategy(self) -> ErrorRecoveryStrategy:
        return self.domain_error.recovery_strategy

    @property
    def context(self) -> Dict[str, Any]:
        return self.domain_error.context


class PreconditionError(PolarMapDomainError):
    """Shape mismatch across scans, empty scan set or inconsistent range list."""
    error_code = "PRECONDITION_VIOLATED"


class MissingInputError(PolarMapDomainError):
    """Phase/coherence data for a requested scan is not in storage."""
    error_code = "MISSING_INPUT"


class StorageError(PolarMapDomainError):
    """Reading or writing the HDF5 stores failed."""
    error_code = "STORAGE_ERROR"


class ConfigurationError(PolarMapDomainError):
    error_code = "CONFIGURATION_ERROR"


class RangeAcquisitionCancelled(Exception):
    """The operator abandoned interactive range entry.

    Not an error: the pipeline stops cleanly and nothing is written.
    """

    def __init__(self, data_type: Optional[str] = None, scan: Optional[int] = None):
        self.data_type = data_type
        self.scan = scan
        where = f" at {data_type} scan {scan}" if scan is not None else ""
        super().__init__(f"Angle range entry cancelled{where}")
