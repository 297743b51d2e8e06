"""Exceptions raised by the broker intelligence core."""


class BrokerIntelError(Exception):
    """Base class for broker intelligence errors."""


class StoreError(BrokerIntelError):
    """Failure while reading from or writing to the load store."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = False):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class StoreUnavailableError(StoreError):
    """
    The store could not be reached or timed out.

    Always recoverable: the calling orchestrator decides whether and when to retry.
    """

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message, operation=operation, recoverable=True)


class OperationCancelledError(BrokerIntelError):
    """The caller's cancellation token was set before the write happened."""
