"""
PromptDash - Custom Exceptions.

Centralized exception handling with standardized error responses.

Only ConfigurationMissingException and UpstreamUnavailableException are
system failures. The rest describe the interpreter recognizing that it
cannot satisfy a request and carry a sentence that is safe to show users.
"""

from typing import Any


class PromptDashException(Exception):
    """Base exception for PromptDash application."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: str | dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ConfigurationMissingException(PromptDashException):
    """Raised when a required credential is absent. Never retried."""

    def __init__(self, setting: str, hint: str | None = None):
        self.setting = setting
        super().__init__(
            code="CONFIGURATION_MISSING",
            message=f"Missing {setting}",
            status_code=500,
            details=hint or f"Set {setting} in the environment (or .env) and restart the service.",
        )


class UpstreamUnavailableException(PromptDashException):
    """Raised when the text-generation service is unreachable, times out or fails."""

    def __init__(self, service_name: str, reason: str):
        self.service_name = service_name
        self.reason = reason
        super().__init__(
            code="UPSTREAM_UNAVAILABLE",
            message=f"{service_name} unavailable",
            status_code=502,
            details=f"{service_name} error: {reason}",
        )


class ExtractionFailedException(PromptDashException):
    """Raised when no JSON payload can be recovered from the model output.

    ``preview`` holds the start of the offending text for operators; it is
    logged but never rendered in a response.
    """

    PREVIEW_CHARS = 500

    def __init__(self, raw_text: str, reason: str = "no JSON payload found"):
        self.preview = (raw_text or "")[: self.PREVIEW_CHARS]
        self.reason = reason
        super().__init__(
            code="EXTRACTION_FAILED",
            message="Failed to process",
            status_code=400,
            details="I had trouble understanding that request. Please try rephrasing it.",
        )


class ValidationFailedException(PromptDashException):
    """Raised when the model output does not match the command grammar."""

    def __init__(self, user_message: str, failures: list[Any] | None = None):
        self.failures = list(failures or [])
        super().__init__(
            code="VALIDATION_FAILED",
            message="Validation failed",
            status_code=400,
            details=user_message,
        )


class TargetNotFoundException(PromptDashException):
    """Raised when a command references a chart or page that does not exist."""

    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            code="TARGET_NOT_FOUND",
            message=f"{resource_type} not found: {resource_id}",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class DuplicateIdentifierException(PromptDashException):
    """Raised when a created chart or page would reuse an existing identifier."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            code="DUPLICATE_ID",
            message=f"{resource_type} already exists: {resource_id}",
            status_code=409,
            details=f"A {resource_type} with id \"{resource_id}\" already exists. Please try again.",
        )


class FeatureDisabledException(PromptDashException):
    """Raised when a feature flag is disabled."""

    def __init__(self, feature_name: str):
        super().__init__(
            code="FEATURE_DISABLED",
            message=f"Feature '{feature_name}' is currently disabled",
            status_code=503,
            details={"feature": feature_name},
        )


class InvalidTargetException(PromptDashException):
    """Raised when a usage clear request names an unknown target."""

    def __init__(self, target: str | None):
        super().__init__(
            code="INVALID_TARGET",
            message="Invalid target. Use ?target=usage, ?target=cache, or ?target=all",
            status_code=400,
            details={"target": target},
        )
