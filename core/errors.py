# core/errors.py


class ListerError(Exception):
    """Base class for every recoverable Power Lister error."""

    code = "error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message or self.code


class CapabilityError(ListerError):
    """The marketplace exists but cannot be used for this operation."""

    code = "capability"


class RemoteOperationError(ListerError):
    """A marketplace call reported failure or raised."""

    code = "remote"


class NotFoundError(ListerError):
    """An item id, marketplace id or listing could not be resolved."""

    code = "not_found"


class ValidationError(ListerError):
    """A field edit carried malformed input."""

    code = "validation"


class StaleWriteError(ListerError):
    """The item collection changed since it was read; the write was rejected."""

    code = "stale_write"


class OperationInProgressError(ListerError):
    """Another listing operation is still in flight."""

    code = "busy"


class StorageError(ListerError):
    """The item collection could not be read or written."""

    code = "storage"
