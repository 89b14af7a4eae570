"""
autopilotsync Reconciliation Engine

Converges the computer objects under the managed search scope to the remote
device inventory, joining device id to object name.

Algorithm:
1. Creation pass: every device without a matching object gets a computer
   object (SPN HOST/<id>) whose altSecurityIdentities maps certificates
   with subject CN=<id> from the configured issuer.
2. Cleanup pass: every object found before the run whose name matches no
   device is deleted.

Creation always runs to completion before cleanup starts. Failures of a
single device or object are logged, recorded in the report and skipped;
they never abort the pass. The engine keeps no state between runs: the
directory says what is provisioned, the inventory says what should be.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Set

import attrs
import structlog
from returns.result import Failure, Result, Success

from autopilotsync.core.exceptions import DirectoryError
from autopilotsync.core.types import (
    ActionKind,
    DirectoryObject,
    ReconcileReport,
    RemoteDevice,
    SyncAction,
    match_key,
)
from autopilotsync.directory.base import (
    ATTR_ALT_SECURITY_IDENTITIES,
    DirectoryService,
    computer_dn,
)


@attrs.define
class ReconciliationEngine:
    """
    Create/cleanup reconciliation between inventory and directory.

    With dry_run set, every action is planned and logged but the directory
    is not touched.

    Example:
        engine = ReconciliationEngine(
            directory=directory,
            search_base="OU=Autopilot,DC=example,DC=com",
            certificate_issuer="DC=com,DC=example,CN=Example Issuing CA",
        )
        report = engine.reconcile(devices, directory.search_objects(base))
    """

    directory: DirectoryService
    search_base: str
    certificate_issuer: str
    dry_run: bool = False

    _actions: List[SyncAction] = attrs.Factory(list)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def reconcile(
        self,
        devices: Sequence[RemoteDevice],
        objects: Sequence[DirectoryObject],
    ) -> ReconcileReport:
        """
        Run both passes.

        Args:
            devices: Full current remote inventory
            objects: Directory objects under the search scope before the run

        Returns:
            ReconcileReport listing every action in order
        """
        self._actions = []
        self._logger.info(
            "reconcile_start",
            devices=len(devices),
            objects=len(objects),
            search_base=self.search_base,
            dry_run=self.dry_run,
        )

        present: Set[str] = {o.key for o in objects}
        self._creation_pass(devices, present)

        wanted = {match_key(d.directory_name) for d in devices}
        self._cleanup_pass(objects, wanted)

        report = ReconcileReport(
            actions=self._actions,
            device_count=len(devices),
            object_count=len(objects),
            dry_run=self.dry_run,
        )
        self._logger.info("reconcile_complete", dry_run=self.dry_run, **report.summary())
        return report

    # -------------------------------------------------------------------------
    # Creation pass
    # -------------------------------------------------------------------------

    def _creation_pass(self, devices: Sequence[RemoteDevice], present: Set[str]) -> None:
        for device in devices:
            key = match_key(device.directory_name)
            if key in present:
                self._logger.info("device_already_provisioned", device_id=device.id)
                self._record(ActionKind.SKIP_DUPLICATE, device.id)
                continue

            created = self._create(device)
            if isinstance(created, Failure):
                continue
            # Later records with the same id now see this object.
            present.add(key)
            self._bind_certificate(device, created.unwrap())

    def _create(self, device: RemoteDevice) -> Result[str, str]:
        """Create the computer object. Returns its DN."""
        name = device.directory_name
        if self.dry_run:
            self._logger.info("device_create_planned", device_id=device.id)
            self._record(ActionKind.CREATE, name)
            return Success(computer_dn(name, self.search_base))

        try:
            obj = self.directory.create_computer(
                self.search_base,
                name,
                device.short_name,
                [device.service_principal_name],
            )
        except DirectoryError as e:
            self._logger.error(
                "device_create_failed",
                device_id=device.id,
                error=e.message,
                code=e.code,
            )
            self._record(ActionKind.CREATE, name, error=e.message)
            return Failure(e.message)

        self._logger.info(
            "device_created",
            device_id=device.id,
            dn=obj.distinguished_name,
            sam_account_name=obj.sam_account_name,
        )
        self._record(ActionKind.CREATE, name)
        return Success(obj.distinguished_name)

    def _bind_certificate(self, device: RemoteDevice, dn: str) -> Result[None, str]:
        mapping = device.alt_security_identity(self.certificate_issuer)
        if self.dry_run:
            self._logger.info("device_identity_planned", device_id=device.id, mapping=mapping)
            self._record(ActionKind.SET_IDENTITY, device.directory_name)
            return Success(None)

        try:
            self.directory.set_attribute(dn, ATTR_ALT_SECURITY_IDENTITIES, [mapping])
        except DirectoryError as e:
            self._logger.error(
                "device_identity_failed",
                device_id=device.id,
                dn=dn,
                error=e.message,
                code=e.code,
            )
            self._record(ActionKind.SET_IDENTITY, device.directory_name, error=e.message)
            return Failure(e.message)

        self._logger.info("device_identity_set", device_id=device.id, mapping=mapping)
        self._record(ActionKind.SET_IDENTITY, device.directory_name)
        return Success(None)

    # -------------------------------------------------------------------------
    # Cleanup pass
    # -------------------------------------------------------------------------

    def _cleanup_pass(self, objects: Sequence[DirectoryObject], wanted: Set[str]) -> None:
        for obj in objects:
            if obj.key in wanted:
                continue
            self._remove(obj)

    def _remove(self, obj: DirectoryObject) -> Result[None, str]:
        if self.dry_run:
            self._logger.info("stale_delete_planned", name=obj.name, dn=obj.distinguished_name)
            self._record(ActionKind.DELETE, obj.name)
            return Success(None)

        try:
            self.directory.delete_object(obj.distinguished_name)
        except DirectoryError as e:
            self._logger.error(
                "stale_delete_failed",
                name=obj.name,
                dn=obj.distinguished_name,
                error=e.message,
                code=e.code,
            )
            self._record(ActionKind.DELETE, obj.name, error=e.message)
            return Failure(e.message)

        self._logger.info("stale_deleted", name=obj.name, dn=obj.distinguished_name)
        self._record(ActionKind.DELETE, obj.name)
        return Success(None)

    def _record(self, kind: ActionKind, name: str, error: str = "") -> None:
        self._actions.append(
            SyncAction(
                kind=kind,
                name=name,
                success=not error,
                error_message=error,
                dry_run=self.dry_run,
            )
        )
