class FieldLogError(Exception):
    """Base class for all fieldlog errors."""


class ConfigurationError(FieldLogError):
    """Raised when a logger or its settings are invalid. Only raised at construction time."""


class UnknownFieldError(ConfigurationError):
    """Exception raised for field names with no registered resolver.

    Attributes:
        field_name: the unknown field name
    """

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Unknown log record field '{field_name}'")


class ReopenError(FieldLogError):
    """Raised when a logger cannot reopen its output sink."""


class ReopenLoopError(FieldLogError):
    """Fatal condition that terminated a reopen-on-signal loop.

    Attributes:
        signum: signal number the loop was listening for
    """

    def __init__(self, signum: int, message: str):
        self.signum = signum
        super().__init__(message)


class ReopenFailedError(ReopenLoopError):
    """The logger's reopen call failed while handling a signal."""


class SignalChannelClosedError(ReopenLoopError):
    """The signal channel was closed while the loop was still listening."""
