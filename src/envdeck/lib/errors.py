"""Custom exception hierarchy for envdeck configuration and operations."""


class EnvDeckError(Exception):
    """Base exception for all envdeck errors.

    All envdeck-specific exceptions inherit from this class, enabling
    centralized exception handling in the CLI.
    """

    pass


class ConfigError(EnvDeckError):
    """Exception raised for configuration errors.

    This exception is raised when project or environment configuration is
    missing, unreadable, or incomplete. It includes field-specific information
    to help users identify and fix configuration issues.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class DeploymentError(EnvDeckError):
    """Exception raised when a provisioning operation fails.

    Attributes:
        operation: Operation that failed (deploy, destroy, state, ...)
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str) -> None:
        """Create a deployment error for an operation."""
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class DestroyCancelledError(DeploymentError):
    """Raised when the user declines the destroy confirmation."""

    def __init__(self) -> None:
        """Create a cancelled destroy error."""
        super().__init__(operation="destroy", message="destroy operation cancelled")


class DestroyInterruptedError(DeploymentError):
    """Raised when the destroy confirmation prompt itself fails.

    Distinct from DestroyCancelledError so the CLI can tell a user that said
    "no" apart from a prompt that could not be answered (closed stdin, Ctrl+C).
    """

    def __init__(self, reason: str) -> None:
        """Create an interrupted destroy error."""
        self.reason = reason
        super().__init__(
            operation="destroy",
            message=f"destroy operation interrupted: {reason}",
        )


class CloudSDKNotInstalledError(EnvDeckError):
    """Raised when the SDK for a cloud provider is not installed."""

    def __init__(self, provider: str, sdk_name: str) -> None:
        """Create an error naming the missing SDK package."""
        self.provider = provider
        self.sdk_name = sdk_name
        super().__init__(
            f"The {provider} SDK is not installed. "
            f"Install it with: pip install {sdk_name}"
        )


class ScopeCancelledError(EnvDeckError):
    """Raised when an awaited call is abandoned because its scope was cancelled."""

    pass
