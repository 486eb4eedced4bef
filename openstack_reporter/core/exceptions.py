"""
Core exception classes for OpenStack Reporter.
"""


class ReporterError(Exception):
    """Base exception for all OpenStack Reporter errors."""
    
    def __init__(self, message: str, details: str = None):
        super().__init__(message)
        self.message = message
        self.details = details


class AuthenticationError(ReporterError):
    """Raised when authenticating against the identity endpoint fails."""
    pass


class ConfigurationError(ReporterError):
    """Raised when configuration is invalid or missing."""
    pass


class DiscoveryError(ReporterError):
    """Raised when a project discovery strategy cannot enumerate projects."""
    pass


class ServiceError(ReporterError):
    """Raised when listing a resource type fails."""
    pass


class StateError(ReporterError):
    """Raised when snapshot persistence operations fail."""
    pass


class SnapshotNotFoundError(StateError):
    """Raised when no saved report exists."""

    def __init__(self, message: str = "No saved report found"):
        super().__init__(message)


class DataUnavailableError(ReporterError):
    """Raised when neither a cached snapshot nor the control plane can provide a report."""
    pass


class UserCancelled(ReporterError):
    """Raised when user cancels operation (ESC key or Ctrl+C)."""

    def __init__(self, message: str = "Operation cancelled by user"):
        super().__init__(message)
