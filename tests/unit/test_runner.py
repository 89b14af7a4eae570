"""
Unit tests for autopilotsync.sync.runner module.
"""

import pytest

from autopilotsync.core.exceptions import ConfigurationError, DirectoryError, InventoryError
from autopilotsync.directory.ldap_directory import LdapDirectory
from autopilotsync.inventory.client import AutopilotInventoryClient, StaticInventory
from autopilotsync.sync.runner import (
    create_directory,
    create_inventory,
    load_credential,
    run_sync,
)

from tests.conftest import seeded_directory


class FailingInventory:
    def list_devices(self):
        raise InventoryError("Graph unavailable")


class UnreachableDirectory:
    closed = False

    def connect(self):
        raise DirectoryError("Cannot connect to ldaps://dc01.example.com")

    def close(self):
        self.closed = True


class TestRunSync:
    """Tests for a complete run."""

    def test_run_reconciles(self, sync_config):
        directory = seeded_directory("stale", "keep")
        report = run_sync(
            sync_config,
            inventory=StaticInventory.from_ids("keep", "new"),
            directory=directory,
        )
        assert directory.names() == ["keep", "new"]
        assert report.created == ("new",)
        assert report.deleted == ("stale",)
        assert report.skipped == ("keep",)
        assert not directory.connected

    def test_dry_run(self, sync_config):
        directory = seeded_directory("stale")
        report = run_sync(
            sync_config,
            inventory=StaticInventory.from_ids("new"),
            directory=directory,
            dry_run=True,
        )
        assert directory.names() == ["stale"]
        assert report.dry_run

    def test_inventory_failure_is_fatal(self, sync_config):
        directory = seeded_directory("stale")
        with pytest.raises(InventoryError):
            run_sync(sync_config, inventory=FailingInventory(), directory=directory)
        assert directory.names() == ["stale"]

    def test_directory_failure_is_fatal(self, sync_config):
        with pytest.raises(DirectoryError):
            run_sync(
                sync_config,
                inventory=StaticInventory.from_ids("new"),
                directory=UnreachableDirectory(),
            )


class TestFactories:
    """Tests for building collaborators from configuration."""

    def test_missing_credential(self, sync_config):
        with pytest.raises(ConfigurationError, match="No valid certificate"):
            load_credential(sync_config)

    def test_credential_loaded_by_subject(self, sync_config, provisioner, credential):
        provisioner.ensure_credential("CN=Other", 12)
        assert load_credential(sync_config).thumbprint == credential.thumbprint

    def test_create_inventory(self, sync_config, credential):
        client = create_inventory(sync_config)
        assert isinstance(client, AutopilotInventoryClient)
        assert client.credential.thumbprint == credential.thumbprint
        assert client.endpoint == sync_config.graph_endpoint
        assert not client.is_connected

    def test_create_directory(self, sync_config):
        directory = create_directory(sync_config)
        assert isinstance(directory, LdapDirectory)
        assert directory.server_uri == "ldaps://dc01.example.com"
        assert directory.bind_user == ""
