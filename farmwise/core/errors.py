# farmwise/core/errors.py

class FarmWiseError(Exception):
    """Base class for every failure the inference pipeline distinguishes."""


class InvalidInput(FarmWiseError):
    """The caller broke a precondition (no image, empty message, request already in flight)."""


class TransportFailure(FarmWiseError):
    """The remote call could not complete: network error, bad status, timeout or broken stream."""


class SchemaViolation(FarmWiseError):
    """The call completed but the payload does not satisfy the expected contract."""


class StoreCorruption(FarmWiseError):
    """A persisted collection could not be parsed. Recovered by treating it as empty."""


class StoreWriteFailure(FarmWiseError):
    """A persisted collection could not be written. The in-memory copy is left as it was."""
