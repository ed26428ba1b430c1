"""IOU Kit custom exceptions."""


class IOUKitError(Exception):
    """Base exception for all IOU Kit errors."""


class InvalidInputError(IOUKitError):
    """Malformed text or configuration supplied by the caller."""


class ConfigurationError(InvalidInputError):
    """Error with configuration loading or validation."""


class NotFoundError(IOUKitError):
    """A query referenced an unknown node, document or signature id."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"Unknown {kind}: {key!r}")


class InvariantViolation(IOUKitError):
    """Internal graph corruption. Always a bug, never caused by the caller."""


class OperationCancelledError(IOUKitError):
    """A long-running operation observed its cancellation token."""
