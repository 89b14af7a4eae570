"""
autopilotsync Core Module

Components:
- types: RemoteDevice, DirectoryObject, Credential, SyncAction, ReconcileReport
- config: YAML-backed immutable configuration
- exceptions: error hierarchy
- logging: structlog setup and run transcript
- prompts: confirmation capability
"""

from autopilotsync.core.types import (
    ActionKind,
    Credential,
    DirectoryObject,
    ReconcileReport,
    RemoteDevice,
    SyncAction,
)
from autopilotsync.core.config import CertificateConfig, SyncConfig
from autopilotsync.core.exceptions import (
    ConfigurationError,
    DirectoryError,
    ExportError,
    InventoryError,
    OperationDeclined,
    ProvisioningError,
    SyncError,
)

__all__ = [
    # Types
    "ActionKind",
    "Credential",
    "DirectoryObject",
    "ReconcileReport",
    "RemoteDevice",
    "SyncAction",
    # Configuration
    "CertificateConfig",
    "SyncConfig",
    # Exceptions
    "ConfigurationError",
    "DirectoryError",
    "ExportError",
    "InventoryError",
    "OperationDeclined",
    "ProvisioningError",
    "SyncError",
]
