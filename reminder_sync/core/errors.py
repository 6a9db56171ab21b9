"""Error taxonomy for a sync run."""


class ReminderSyncError(Exception):
    """Base class for errors raised by the sync engine."""


class ConfigurationError(ReminderSyncError, ValueError):
    """Required identifiers or credentials are missing; raised before any I/O."""


class SchemaError(ReminderSyncError):
    """The Master table has no usable header row."""


class DeliveryFailure(ReminderSyncError):
    """A transport rejected or failed to deliver a message."""


class PersistenceFailure(ReminderSyncError):
    """A write to (or read from) the tabular store failed."""
