"""Exceptions for conditions the engine cannot turn into a typed result."""


class SchedulingError(Exception):
    """Base class for unrecoverable scheduling failures."""


class CatalogMisconfiguredError(SchedulingError):
    """The configured slot catalog violates institutional policy."""


class CorruptBatchError(SchedulingError):
    """A persisted batch could not be read back into a valid Batch."""

    def __init__(self, batch_id: str, reason: str):
        super().__init__(f"Batch {batch_id} is corrupt: {reason}")
        self.batch_id = batch_id
        self.reason = reason


class StaleBatchError(SchedulingError):
    """The batch (or snapshot) changed since the caller read it."""

    def __init__(self, batch_id: str, expected_version, actual_version):
        super().__init__(
            f"Batch {batch_id} is at version {actual_version}, expected {expected_version}"
        )
        self.batch_id = batch_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class UnknownTimezoneError(SchedulingError):
    def __init__(self, timezone: str):
        super().__init__(f"Unknown or unsupported timezone: {timezone!r}")
        self.timezone = timezone


class InvalidSlotError(SchedulingError):
    pass
