"""Exception types raised by attachsync."""


class AttachSyncError(Exception):
    """Base class for attachsync errors."""

    pass


class SettingsError(AttachSyncError):
    """Raised when the settings file is unreadable or invalid."""

    pass


class FolderConflictError(AttachSyncError):
    """Raised when a file occupies a path that must be a folder."""

    pass


class VaultHostError(AttachSyncError):
    """Raised when a host primitive is asked to do something it cannot."""

    pass
