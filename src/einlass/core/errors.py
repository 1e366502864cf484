"""
Error registry for Einlass

Structured error definitions with user-facing messages and resolution
hints. Admission errors carry the rejected file and a human-readable
reason; they are reported through return codes and notifications and are
never raised out of ``Context.add``.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Any, Dict, Optional
from datetime import datetime


class ErrorDomain(Enum):
    """High-level error domains"""
    ADMISSION = "admission"
    SCHEDULING = "scheduling"
    TRANSPORT = "transport"
    CONFIGURATION = "configuration"


class ErrorCode(Enum):
    """Error codes for Einlass"""

    # Admission errors (1000-1999)
    QUEUE_LIMIT_EXCEEDED = "EL1001"
    FILTER_REJECTED = "EL1002"
    DUPLICATE_FILE = "EL1003"
    EXTENSION_NOT_ALLOWED = "EL1004"
    FILE_TOO_LARGE = "EL1005"

    # Scheduling errors (2000-2999)
    INVALID_STATUS_TRANSITION = "EL2001"

    # Transport errors (3000-3999)
    TRANSPORT_FAILED = "EL3001"

    # Configuration errors (4000-4999)
    CONFIG_VALIDATION_FAILED = "EL4001"
    INVALID_SIZE_LIMIT = "EL4002"


@dataclass
class ErrorDefinition:
    """Static description of an error code"""
    code: ErrorCode
    domain: ErrorDomain
    message: str
    user_message: Optional[str] = None
    resolution_hint: Optional[str] = None


ERROR_CATALOG: Dict[ErrorCode, ErrorDefinition] = {
    ErrorCode.QUEUE_LIMIT_EXCEEDED: ErrorDefinition(
        code=ErrorCode.QUEUE_LIMIT_EXCEEDED,
        domain=ErrorDomain.ADMISSION,
        message="Queue capacity reached",
        user_message="The upload queue is full",
        resolution_hint="Wait for queued files to finish or raise queue_capacity"
    ),
    ErrorCode.FILTER_REJECTED: ErrorDefinition(
        code=ErrorCode.FILTER_REJECTED,
        domain=ErrorDomain.ADMISSION,
        message="File rejected by filter",
        user_message="The file was not accepted"
    ),
    ErrorCode.DUPLICATE_FILE: ErrorDefinition(
        code=ErrorCode.DUPLICATE_FILE,
        domain=ErrorDomain.ADMISSION,
        message="File already in queue",
        user_message="This file is already queued",
        resolution_hint="Remove the queued copy or disable prevent_duplicate"
    ),
    ErrorCode.EXTENSION_NOT_ALLOWED: ErrorDefinition(
        code=ErrorCode.EXTENSION_NOT_ALLOWED,
        domain=ErrorDomain.ADMISSION,
        message="File extension not allowed",
        user_message="This file type is not accepted",
        resolution_hint="Add the extension to one of the accept groups"
    ),
    ErrorCode.FILE_TOO_LARGE: ErrorDefinition(
        code=ErrorCode.FILE_TOO_LARGE,
        domain=ErrorDomain.ADMISSION,
        message="File size exceeds limit",
        user_message="The file is too large",
        resolution_hint="Raise size_limit or pick a smaller file"
    ),
    ErrorCode.INVALID_STATUS_TRANSITION: ErrorDefinition(
        code=ErrorCode.INVALID_STATUS_TRANSITION,
        domain=ErrorDomain.SCHEDULING,
        message="Invalid file status transition"
    ),
    ErrorCode.TRANSPORT_FAILED: ErrorDefinition(
        code=ErrorCode.TRANSPORT_FAILED,
        domain=ErrorDomain.TRANSPORT,
        message="Upload transport failed",
        user_message="The upload failed"
    ),
    ErrorCode.CONFIG_VALIDATION_FAILED: ErrorDefinition(
        code=ErrorCode.CONFIG_VALIDATION_FAILED,
        domain=ErrorDomain.CONFIGURATION,
        message="Configuration validation failed"
    ),
    ErrorCode.INVALID_SIZE_LIMIT: ErrorDefinition(
        code=ErrorCode.INVALID_SIZE_LIMIT,
        domain=ErrorDomain.CONFIGURATION,
        message="Malformed size limit",
        resolution_hint='Use a byte count or a number with a k/m/g/t suffix, e.g. "2m"'
    ),
}


class EinlassError(Exception):
    """Base exception for Einlass with structured error information"""

    def __init__(self,
                 error_code: ErrorCode,
                 context: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None,
                 custom_message: Optional[str] = None):
        """
        Initialize Einlass error

        Args:
            error_code: The specific error code from ErrorCode enum
            context: Additional context information (file name, limit, etc.)
            cause: The underlying exception that caused this error
            custom_message: Optional custom message to override default
        """
        self.error_code = error_code
        self.definition = ERROR_CATALOG[error_code]
        self.context = context or {}
        self.cause = cause
        self.custom_message = custom_message
        self.timestamp = datetime.utcnow()

        super().__init__(self.message)

    @property
    def message(self) -> str:
        return self.custom_message or self.definition.message

    @property
    def user_friendly_message(self) -> str:
        return self.definition.user_message or self.definition.message

    @property
    def resolution_hint(self) -> Optional[str]:
        return self.definition.resolution_hint

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization"""
        return {
            "error_code": self.error_code.value,
            "domain": self.definition.domain.value,
            "message": self.message,
            "user_message": self.user_friendly_message,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
            "resolution_hint": self.resolution_hint,
            "cause": str(self.cause) if self.cause else None
        }

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"


class AdmissionError(EinlassError):
    """A candidate file was refused entry to the queue"""

    def __init__(self,
                 error_code: ErrorCode,
                 file: Any = None,
                 reason: Optional[str] = None,
                 cause: Optional[Exception] = None):
        self.file = file
        context = {}
        if file is not None:
            context["file"] = getattr(file, "name", repr(file))
        super().__init__(error_code, context, cause, custom_message=reason)

    @property
    def reason(self) -> str:
        return self.message


class QueueLimitError(AdmissionError):
    def __init__(self, file: Any = None, reason: Optional[str] = None):
        super().__init__(ErrorCode.QUEUE_LIMIT_EXCEEDED, file,
                         reason or "queue capacity reached")


class FilterError(AdmissionError):
    """Generic filter rejection; base of the typed filter errors"""

    def __init__(self,
                 file: Any,
                 reason: str,
                 cause: Optional[Exception] = None,
                 error_code: ErrorCode = ErrorCode.FILTER_REJECTED):
        super().__init__(error_code, file, reason, cause)


class DuplicateError(FilterError):
    def __init__(self, file: Any, reason: Optional[str] = None):
        super().__init__(file, reason or f'file "{file.name}" already in queue',
                         error_code=ErrorCode.DUPLICATE_FILE)


class FileExtensionError(FilterError):
    def __init__(self, file: Any, reason: Optional[str] = None):
        super().__init__(file, reason or f'extension "{file.ext}" is not allowed',
                         error_code=ErrorCode.EXTENSION_NOT_ALLOWED)


class FileSizeError(FilterError):
    def __init__(self, file: Any, reason: str):
        super().__init__(file, reason, error_code=ErrorCode.FILE_TOO_LARGE)


class ConfigurationError(EinlassError, ValueError):
    """Raised for invalid configuration; also a ValueError so pydantic
    validators report it as a validation failure"""

    def __init__(self, message: str,
                 error_code: ErrorCode = ErrorCode.CONFIG_VALIDATION_FAILED,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(error_code, context, custom_message=message)


class InvalidTransitionError(EinlassError):
    def __init__(self, file: Any, current: Any, target: Any):
        self.file = file
        super().__init__(
            ErrorCode.INVALID_STATUS_TRANSITION,
            {"file": getattr(file, "name", repr(file)),
             "from": getattr(current, "name", current),
             "to": getattr(target, "name", target)},
            custom_message=(
                f"cannot move {getattr(file, 'name', file)} from "
                f"{getattr(current, 'name', current)} to {getattr(target, 'name', target)}"
            )
        )


class TransportError(EinlassError):
    """Wraps a transport failure stored on ``UploadFile.error``"""

    def __init__(self, file: Any, cause: Exception):
        self.file = file
        super().__init__(
            ErrorCode.TRANSPORT_FAILED,
            {"file": getattr(file, "name", repr(file))},
            cause=cause,
            custom_message=f"upload of {getattr(file, 'name', file)} failed: {cause}"
        )
