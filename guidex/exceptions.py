"""
GuideX exception hierarchy.

- GuideXError: base for every known failure
- ConfigError: bad or missing configuration
- AuthError: no authenticated owner
- StoreError: record store transport/validation failure
- ValidationError: a required draft field is empty
- InsightError: generative AI call failed (always handled fail-soft)
"""
from typing import Optional


class GuideXError(Exception):
    """Base class for all expected GuideX errors.

    Catching this handles every anticipated failure mode.
    """

    def __init__(self, message: str, hint: Optional[str] = None):
        """
        Args:
            message: what went wrong
            hint: suggested action for the user
        """
        super().__init__(message)
        self.message = message
        self.hint = hint

    def get_user_message(self) -> str:
        """Return a user-facing message."""
        if self.hint:
            return f"{self.message}\n💡 Hint: {self.hint}"
        return self.message


class ConfigError(GuideXError):
    """Configuration file missing, malformed or invalid."""

    def __init__(self, message: str, config_path: Optional[str] = None):
        hint = f"Check the config file: {config_path}" if config_path else "Check the config file format"
        super().__init__(message, hint)
        self.config_path = config_path


class AuthError(GuideXError):
    """No authenticated owner for an operation that needs one."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, hint="Please sign in")


class StoreError(GuideXError):
    """Record store failure (transport, HTTP or validation).

    Explicit save/delete actions surface it inline; background refreshes
    only log it.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.operation = operation or "unknown"
        self.table = table or "unknown"
        self.status_code = status_code
        super().__init__(
            f"[{self.table}.{self.operation}] {message}",
            hint="Could not reach the database. Check your connection and try again.",
        )


class ValidationError(GuideXError):
    """A draft failed its required-field checks."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, hint=f"Fill in '{field}'" if field else None)
        self.field = field


class InsightError(GuideXError):
    """Base class for generative AI failures."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        model_name: Optional[str] = None,
        endpoint: Optional[str] = None
    ):
        self.provider = provider or "unknown"
        self.model_name = model_name or "unknown"
        self.endpoint = endpoint

        context = f"[{self.provider}/{self.model_name}]"
        super().__init__(f"{context} {message}")

    def get_user_message(self) -> str:
        base = f"Mentor service failed ({self.provider}/{self.model_name}): {self.message}"
        if self.hint:
            return f"{base}\n💡 Hint: {self.hint}"
        return base


class InsightConnectionError(InsightError):
    """Could not connect to the model endpoint."""

    def __init__(
        self,
        provider: Optional[str] = None,
        model_name: Optional[str] = None,
        endpoint: Optional[str] = None
    ):
        super().__init__("Could not connect to the model service", provider, model_name, endpoint)
        self.hint = "Check the network connection or the API endpoint"


class InsightAuthError(InsightError):
    """API key rejected."""

    def __init__(
        self,
        provider: Optional[str] = None,
        model_name: Optional[str] = None,
        endpoint: Optional[str] = None
    ):
        super().__init__("Model authentication failed", provider, model_name, endpoint)
        self.hint = "Check that the API key is configured"


class InsightTimeoutError(InsightError):
    """Model call timed out."""

    def __init__(
        self,
        provider: Optional[str] = None,
        model_name: Optional[str] = None,
        endpoint: Optional[str] = None,
        timeout_seconds: Optional[float] = None
    ):
        message = "Model call timed out"
        if timeout_seconds:
            message = f"Model call timed out ({timeout_seconds}s)"
        super().__init__(message, provider, model_name, endpoint)
        self.timeout_seconds = timeout_seconds
        self.hint = "The network or the model is slow, try again later"


class InsightRateLimitError(InsightError):
    """Request rate exceeded."""

    def __init__(
        self,
        provider: Optional[str] = None,
        model_name: Optional[str] = None,
        endpoint: Optional[str] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__("Rate limit exceeded", provider, model_name, endpoint)
        self.retry_after = retry_after
        if retry_after:
            self.hint = f"Retry in {retry_after} seconds"
        else:
            self.hint = "Try again later"
