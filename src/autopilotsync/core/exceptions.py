"""
autopilotsync Exception Types

Two severities exist. Fatal errors (configuration, credential provisioning,
export, inventory and directory connectivity) propagate to the caller and
abort the run. Per-item errors (one device or one stale object) are raised
by the directory layer as DirectoryError and absorbed by the engine.
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for all autopilotsync errors."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigurationError(SyncError):
    """
    Configuration is missing, unreadable or invalid.

    Raised at startup, before any remote call is made.
    """

    pass


class ProvisioningError(SyncError):
    """
    Credential generation or trust store operation failed.
    """

    pass


class ExportError(SyncError):
    """
    Public certificate could not be written to the export path.
    """

    pass


class InventoryError(SyncError):
    """
    Device inventory API failure.

    Covers token acquisition as well as HTTP and payload errors.
    """

    pass


class DirectoryError(SyncError):
    """
    Directory service operation failed.

    Carries the LDAP result code when one is available.
    """

    pass


class OperationDeclined(Exception):
    """
    The operator declined a destructive confirmation prompt.

    Not an error: the CLI exits with status 0.
    """

    def __init__(self, message: str = "Operation declined by operator") -> None:
        super().__init__(message)
        self.message = message
