class AopLoggingError(Exception):
    """Base exception for failures inside the logging layer itself."""

    def __init__(self, message: str, cause: Exception = None):
        self.message = message
        self.cause = cause
        super().__init__(message if cause is None else f"{message}: {cause}")


class ContextSetupError(AopLoggingError):
    """Raised when correlation data could not be gathered from the request."""
    pass


class RequestDetailError(AopLoggingError):
    """Raised when the request detail record could not be built."""
    pass


class RegistrationError(AopLoggingError):
    """Raised when a component cannot be tagged for interception."""
    pass
