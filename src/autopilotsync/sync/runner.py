"""
autopilotsync Sync Run

One sequential run: load the Graph credential, read the device inventory,
read the directory, reconcile. Any failure before reconciliation is fatal
and propagates.
"""

from __future__ import annotations

from typing import Optional

import structlog

from autopilotsync.certificates.store import CredentialStore
from autopilotsync.core.config import SyncConfig
from autopilotsync.core.exceptions import ConfigurationError
from autopilotsync.core.types import Credential, ReconcileReport
from autopilotsync.directory.base import DirectoryService
from autopilotsync.directory.ldap_directory import LdapDirectory
from autopilotsync.inventory.client import AutopilotInventoryClient, DeviceInventory
from autopilotsync.sync.engine import ReconciliationEngine

logger = structlog.get_logger()


def load_credential(config: SyncConfig, store: Optional[CredentialStore] = None) -> Credential:
    """
    Pick the newest valid credential matching the configured subject.

    Raises:
        ConfigurationError: If the store holds no usable credential
    """
    if store is None:
        store = CredentialStore(config.credential_store)
    candidates = [c for c in store.find(config.certificate_subject) if c.is_valid_at()]
    if not candidates:
        raise ConfigurationError(
            f"No valid certificate with subject {config.certificate_subject} "
            f"in {config.credential_store}"
        )
    return max(candidates, key=lambda c: c.not_valid_after)


def create_inventory(config: SyncConfig) -> AutopilotInventoryClient:
    """Graph inventory client authenticated with the stored credential."""
    store = CredentialStore(config.credential_store)
    credential = load_credential(config, store)
    return AutopilotInventoryClient(
        tenant_id=config.tenant_id,
        application_id=config.application_id,
        credential=credential,
        private_key_pem=store.load_private_key_pem(credential),
        endpoint=config.graph_endpoint,
    )


def create_directory(config: SyncConfig) -> LdapDirectory:
    return LdapDirectory(
        server_uri=config.ldap_server,
        bind_user=config.ldap_user,
        bind_password=config.ldap_password,
    )


def run_sync(
    config: SyncConfig,
    inventory: Optional[DeviceInventory] = None,
    directory: Optional[DirectoryService] = None,
    dry_run: bool = False,
) -> ReconcileReport:
    """
    Execute one reconciliation run.

    Args:
        config: Validated sync configuration
        inventory: Device source (default: Graph client built from config)
        directory: Directory service (default: LDAP built from config)
        dry_run: Plan actions without mutating the directory

    Returns:
        ReconcileReport of the run

    Raises:
        ConfigurationError, ProvisioningError, InventoryError, DirectoryError:
            Fatal failures before or while reading either side
    """
    logger.info(
        "sync_start",
        tenant_id=config.tenant_id,
        search_base=config.search_base,
        dry_run=dry_run,
    )
    if inventory is None:
        inventory = create_inventory(config)
    if directory is None:
        directory = create_directory(config)

    devices = inventory.list_devices()

    directory.connect()
    try:
        objects = directory.search_objects(config.search_base)
        logger.info("directory_listed", objects=len(objects), search_base=config.search_base)

        engine = ReconciliationEngine(
            directory=directory,
            search_base=config.search_base,
            certificate_issuer=config.certificate_issuer,
            dry_run=dry_run,
        )
        report = engine.reconcile(devices, objects)
    finally:
        directory.close()

    logger.info("sync_complete", ok=report.ok, **report.summary())
    return report
