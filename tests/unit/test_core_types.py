"""
Unit tests for autopilotsync.core.types module.
"""

import json

import pytest

from autopilotsync.core.types import (
    EMPTY_DEVICE_ID,
    ActionKind,
    DirectoryObject,
    ReconcileReport,
    RemoteDevice,
    SyncAction,
    match_key,
)


class TestRemoteDevice:
    """Tests for RemoteDevice."""

    def test_id_is_trimmed(self):
        device = RemoteDevice(id="  abc-123  ")
        assert device.id == "abc-123"

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            RemoteDevice(id="   ")

    def test_short_name_truncates_to_19(self):
        device = RemoteDevice(id="AAAAAAAAAAAAAAAAAAAA-1")
        assert device.short_name == "A" * 19
        assert len(device.short_name) == 19

    def test_short_name_keeps_short_ids(self):
        assert RemoteDevice(id="PC-01").short_name == "PC-01"

    def test_service_principal_name(self):
        assert RemoteDevice(id="X").service_principal_name == "HOST/X"

    def test_alt_security_identity(self):
        device = RemoteDevice(id="AAAAAAAAAAAAAAAAAAAA-1")
        assert (
            device.alt_security_identity("DC=com,DC=example,CN=CA")
            == "X509:<I>DC=com,DC=example,CN=CA<S>CN=AAAAAAAAAAAAAAAAAAAA-1"
        )

    def test_from_graph(self):
        record = {
            "id": "autopilot-1",
            "azureActiveDirectoryDeviceId": "3f1c2f7e-8b3a-4c55-9f63-0d2b4a0c9e11",
            "serialNumber": "SN123",
            "model": "Surface Laptop 5",
            "manufacturer": "Microsoft Corporation",
            "groupTag": "Staff",
            "displayName": None,
        }
        device = RemoteDevice.from_graph(record)
        assert device is not None
        assert device.id == "3f1c2f7e-8b3a-4c55-9f63-0d2b4a0c9e11"
        assert device.autopilot_id == "autopilot-1"
        assert device.serial_number == "SN123"
        assert device.group_tag == "Staff"
        assert device.display_name == ""

    @pytest.mark.parametrize("device_id", [None, "", "  ", EMPTY_DEVICE_ID])
    def test_from_graph_unregistered(self, device_id):
        record = {"id": "autopilot-1", "azureActiveDirectoryDeviceId": device_id}
        assert RemoteDevice.from_graph(record) is None


class TestDirectoryObject:
    """Tests for DirectoryObject."""

    def test_key_is_case_insensitive(self):
        obj = DirectoryObject(name="PC-01")
        assert obj.key == match_key("pc-01")

    def test_sequences_become_tuples(self):
        obj = DirectoryObject(name="X", service_principal_names=["HOST/X"])
        assert obj.service_principal_names == ("HOST/X",)

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            DirectoryObject(name="")


class TestReconcileReport:
    """Tests for SyncAction and ReconcileReport."""

    def test_failed_action_requires_message(self):
        with pytest.raises(ValueError):
            SyncAction(kind=ActionKind.CREATE, name="X", success=False)

    def test_views_and_summary(self):
        report = ReconcileReport(
            actions=[
                SyncAction(kind=ActionKind.CREATE, name="A"),
                SyncAction(kind=ActionKind.SET_IDENTITY, name="A"),
                SyncAction(kind=ActionKind.SKIP_DUPLICATE, name="B"),
                SyncAction(kind=ActionKind.DELETE, name="C"),
                SyncAction(kind=ActionKind.DELETE, name="D", success=False, error_message="busy"),
            ],
            device_count=2,
            object_count=3,
        )
        assert report.created == ("A",)
        assert report.skipped == ("B",)
        assert report.deleted == ("C",)
        assert [a.name for a in report.failures] == ["D"]
        assert not report.ok
        assert report.summary() == {
            "devices": 2,
            "objects": 3,
            "created": 1,
            "skipped": 1,
            "deleted": 1,
            "failed": 1,
        }

    def test_export_json(self):
        report = ReconcileReport(
            actions=[SyncAction(kind=ActionKind.DELETE, name="X", dry_run=True)],
            dry_run=True,
        )
        data = json.loads(report.export_json())
        assert data["dry_run"] is True
        assert data["actions"][0]["kind"] == "DELETE"
        assert data["actions"][0]["error"] is None
