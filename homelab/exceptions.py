"""
Custom exception classes for the homelab installer.

This module defines the error taxonomy used by the orchestration core. Every
error carries a stable error code, a human-readable message and a details
mapping identifying the service, template or configuration field involved.
"""

import logging
from typing import Optional, Dict, Any, List
from enum import Enum


logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standard error codes for the installer."""

    # Fatal run errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    SERVICE_INSTALLATION_ERROR = "SERVICE_INSTALLATION_ERROR"
    TEMPLATE_ERROR = "TEMPLATE_ERROR"
    DISTRIBUTION_NOT_SUPPORTED = "DISTRIBUTION_NOT_SUPPORTED"
    UNKNOWN_SERVICE = "UNKNOWN_SERVICE"

    # Collaborator errors, usually attached as a cause
    COMMAND_EXECUTION_ERROR = "COMMAND_EXECUTION_ERROR"
    FILESYSTEM_ERROR = "FILESYSTEM_ERROR"
    CONTAINER_RUNTIME_ERROR = "CONTAINER_RUNTIME_ERROR"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class HomelabError(Exception):
    """Base exception class for all homelab installer errors.

    It provides structured error information including an error code, a
    message and additional context details.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Standardized error code
            details: Additional error context and details
            cause: The underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

        logger.debug(f"Exception created: {error_code.value} - {message}", exc_info=cause)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for reporting."""
        result = {
            "error": self.error_code.value,
            "message": self.message,
            "details": dict(self.details)
        }

        if self.cause:
            result["details"]["cause"] = str(self.cause)
            result["details"]["cause_type"] = type(self.cause).__name__

        return result


class ConfigurationError(HomelabError):
    """Raised when a configuration field is missing or invalid."""

    def __init__(self, field: str, reason: str, value: Any = None, cause: Optional[Exception] = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value

        super().__init__(
            message=f"Invalid configuration for '{field}': {reason}",
            error_code=ErrorCode.CONFIGURATION_ERROR,
            details=details,
            cause=cause
        )
        self.field = field
        self.reason = reason


class ServiceInstallationError(HomelabError):
    """Raised when a specific service fails to install.

    The ``stage`` names the lifecycle step that failed so a report can point
    at both the service and the step.
    """

    def __init__(
        self,
        service_type: str,
        reason: str,
        stage: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        message = f"Failed to install {service_type}: {reason}"
        if stage:
            message = f"Failed to install {service_type} during {stage}: {reason}"

        super().__init__(
            message=message,
            error_code=ErrorCode.SERVICE_INSTALLATION_ERROR,
            details={"service": str(service_type), "stage": stage, "reason": reason},
            cause=cause
        )
        self.service_type = service_type
        self.stage = stage


class TemplateError(HomelabError):
    """Raised when a template is malformed or cannot be rendered."""

    def __init__(
        self,
        template_name: str,
        reason: str,
        placeholder: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        details = {"template": template_name, "reason": reason}
        if placeholder is not None:
            details["placeholder"] = placeholder

        super().__init__(
            message=f"Template '{template_name}': {reason}",
            error_code=ErrorCode.TEMPLATE_ERROR,
            details=details,
            cause=cause
        )
        self.template_name = template_name
        self.placeholder = placeholder


class TemplateNotFoundError(TemplateError):
    """Raised when no blueprint file exists for a template name."""

    def __init__(self, template_name: str, searched: Optional[List[str]] = None):
        super().__init__(template_name, "template not found")
        self.details["searched"] = searched or []


class TemplateFormatError(TemplateError):
    """Raised when a blueprint file is not well-formed structured data."""

    def __init__(self, template_name: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(template_name, f"invalid template format: {reason}", cause=cause)


class DistributionNotSupportedError(HomelabError):
    """Raised when the host operating system is not recognized."""

    def __init__(self, distribution: str):
        super().__init__(
            message=f"Distribution not supported: {distribution}",
            error_code=ErrorCode.DISTRIBUTION_NOT_SUPPORTED,
            details={"distribution": distribution}
        )
        self.distribution = distribution


class UnknownServiceError(HomelabError):
    """Raised when a service type has no registered constructor."""

    def __init__(self, service_type: str):
        super().__init__(
            message=f"Unknown service type: {service_type}",
            error_code=ErrorCode.UNKNOWN_SERVICE,
            details={"service": str(service_type)}
        )
        self.service_type = service_type


class CommandExecutionError(HomelabError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stderr: str = ""):
        super().__init__(
            message=f"Command failed with exit code {exit_code}: {command}",
            error_code=ErrorCode.COMMAND_EXECUTION_ERROR,
            details={"command": command, "exit_code": exit_code, "stderr": stderr}
        )
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr


class FileSystemError(HomelabError):
    """Raised when a configuration file cannot be written or removed."""

    def __init__(self, operation: str, path: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            message=f"Failed to {operation} {path}: {reason}",
            error_code=ErrorCode.FILESYSTEM_ERROR,
            details={"operation": operation, "path": str(path)},
            cause=cause
        )
        self.operation = operation
        self.path = path


class ContainerRuntimeError(HomelabError):
    """Raised when the container runtime cannot be reached or queried."""

    def __init__(self, message: str = "Docker is not running or not accessible", cause: Optional[Exception] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.CONTAINER_RUNTIME_ERROR,
            details={"service": "Docker"},
            cause=cause
        )
