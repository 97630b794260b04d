"""Custom exceptions for LODE."""


class LodeError(Exception):
    """Base exception for all LODE errors."""


class ConfigurationError(LodeError):
    """Configuration-related errors."""


class ValidationError(LodeError):
    """Spec is malformed; raised before anything is submitted."""


class ProviderError(LodeError):
    """Cloud provider or control-plane API rejected a request."""


class AuthError(ProviderError):
    """Credentials are stale or invalid."""


class ConflictError(ProviderError):
    """Resource already exists."""


class NotFoundError(ProviderError):
    """Resource does not exist."""


class ProviderUnavailableError(ProviderError):
    """Transient failure: throttled, server error or unreachable."""


class ReadinessTimeoutError(LodeError, TimeoutError):
    """Readiness or address assignment was not observed within its bound."""


class DecodeError(LodeError):
    """Credential payload could not be decoded."""


class CredentialWriteError(LodeError, OSError):
    """Credential artifact could not be written."""


class WorkflowStateError(LodeError):
    """Illegal workflow state transition."""
