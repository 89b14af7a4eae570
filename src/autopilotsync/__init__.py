"""
autopilotsync - Active Directory computer objects for Autopilot devices

Creates a computer object for every Autopilot device so that the device can
authenticate to the network with its certificate (altSecurityIdentities
mapping), and removes objects whose device has left the inventory.

Example Usage:
    from autopilotsync import SyncConfig, run_sync

    config = SyncConfig.from_file(Path("autopilotsync.yaml"))
    report = run_sync(config)
    print(report.summary())

The certificate used to authenticate against Microsoft Graph is minted by
CertificateProvisioner (CLI: `autopilotsync create-certificate`).
"""

__version__ = "0.1.0"

from autopilotsync.core.types import DirectoryObject, ReconcileReport, RemoteDevice
from autopilotsync.core.config import CertificateConfig, SyncConfig
from autopilotsync.certificates import CertificateProvisioner, CredentialStore
from autopilotsync.sync import ReconciliationEngine, run_sync

__all__ = [
    # Main API
    "run_sync",
    "ReconciliationEngine",
    "CertificateProvisioner",
    "CredentialStore",
    # Configuration
    "CertificateConfig",
    "SyncConfig",
    # Types
    "DirectoryObject",
    "ReconcileReport",
    "RemoteDevice",
    # Metadata
    "__version__",
]
