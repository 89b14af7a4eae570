"""
autopilotsync Core Types

Record types shared by the inventory, directory and reconciliation layers.

Design Principles:
- Immutable: all records are frozen attrs classes
- Validated: identifiers are non-empty at construction
- Join key: device id == directory object name, compared case-insensitively
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum, auto
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import attrs
from attrs import field, validators
from cryptography import x509


# Length of the legacy (pre-Windows 2000) account name, excluding the
# trailing "$" that marks computer accounts.
SHORT_NAME_LENGTH = 19

# Graph reports this id for Autopilot records not yet joined to Entra ID.
EMPTY_DEVICE_ID = "00000000-0000-0000-0000-000000000000"


def match_key(name: str) -> str:
    """Normalize a device id or object name for comparison."""
    return name.strip().casefold()


# =============================================================================
# INVENTORY / DIRECTORY RECORDS
# =============================================================================


@attrs.define(frozen=True, slots=True)
class RemoteDevice:
    """
    Cloud-registered device eligible for directory provisioning.

    Attributes:
        id: Entra ID device id, used as the directory object name
        autopilot_id: Id of the Autopilot device identity record
        serial_number: Hardware serial number
        model: Hardware model
        manufacturer: Hardware manufacturer
        group_tag: Autopilot group tag
        display_name: Display name reported by Autopilot
    """

    id: str = field(
        validator=[validators.instance_of(str), validators.min_len(1)],
        converter=str.strip,
    )
    autopilot_id: str = ""
    serial_number: str = ""
    model: str = ""
    manufacturer: str = ""
    group_tag: str = ""
    display_name: str = ""

    @classmethod
    def from_graph(cls, record: Mapping[str, Any]) -> Optional[RemoteDevice]:
        """
        Build a device from a windowsAutopilotDeviceIdentity record.

        Returns None when the record carries no usable device id.
        """
        device_id = (record.get("azureActiveDirectoryDeviceId") or "").strip()
        if not device_id or device_id == EMPTY_DEVICE_ID:
            return None
        return cls(
            id=device_id,
            autopilot_id=record.get("id") or "",
            serial_number=record.get("serialNumber") or "",
            model=record.get("model") or "",
            manufacturer=record.get("manufacturer") or "",
            group_tag=record.get("groupTag") or "",
            display_name=record.get("displayName") or "",
        )

    @property
    def directory_name(self) -> str:
        """Name of the directory object backing this device."""
        return self.id

    @property
    def short_name(self) -> str:
        """Legacy-compatible short identifier (sAMAccountName stem)."""
        return self.id[:SHORT_NAME_LENGTH]

    @property
    def service_principal_name(self) -> str:
        return f"HOST/{self.id}"

    def alt_security_identity(self, issuer: str) -> str:
        """
        Certificate mapping value for altSecurityIdentities.

        Binds the object to certificates issued by `issuer` whose subject
        is CN=<device id>.
        """
        return f"X509:<I>{issuer}<S>CN={self.id}"


@attrs.define(frozen=True, slots=True)
class DirectoryObject:
    """
    Computer object under the managed search scope.

    INVARIANT: name is non-empty
    """

    name: str = field(validator=[validators.instance_of(str), validators.min_len(1)])
    distinguished_name: str = ""
    sam_account_name: str = ""
    service_principal_names: Tuple[str, ...] = field(default=(), converter=tuple)
    alt_security_identities: Tuple[str, ...] = field(default=(), converter=tuple)

    @property
    def key(self) -> str:
        return match_key(self.name)


# =============================================================================
# CREDENTIALS
# =============================================================================


@attrs.define(frozen=True, slots=True)
class Credential:
    """
    Certificate held in the local trust store.

    The private key stays in the store; only the certificate is carried.
    """

    subject: str
    thumbprint: str
    not_valid_before: datetime
    not_valid_after: datetime
    certificate: x509.Certificate = field(repr=False, eq=False)
    certificate_path: Optional[Path] = None
    key_path: Optional[Path] = field(default=None, repr=False)

    def is_valid_at(self, time: Optional[datetime] = None) -> bool:
        """Check if the certificate is valid at given time (default: now)."""
        if time is None:
            time = datetime.now(timezone.utc)
        return self.not_valid_before <= time < self.not_valid_after


# =============================================================================
# RECONCILIATION RESULTS
# =============================================================================


class ActionKind(Enum):
    """Kind of directory mutation issued by the engine."""

    CREATE = auto()
    SET_IDENTITY = auto()
    SKIP_DUPLICATE = auto()
    DELETE = auto()


@attrs.define(frozen=True, slots=True)
class SyncAction:
    """
    One attempted (or, in dry-run mode, planned) directory action.
    """

    kind: ActionKind
    name: str
    success: bool = True
    error_message: str = ""
    dry_run: bool = False
    timestamp: datetime = field(factory=lambda: datetime.now(timezone.utc))

    def __attrs_post_init__(self) -> None:
        if not self.success and not self.error_message:
            raise ValueError("Failed action must have error_message")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.name,
            "name": self.name,
            "success": self.success,
            "error": self.error_message or None,
            "dry_run": self.dry_run,
            "timestamp": self.timestamp.isoformat(),
        }


@attrs.define(frozen=True, slots=True)
class ReconcileReport:
    """
    Outcome of one reconciliation run.

    Attributes:
        actions: Actions in the order they were attempted
        device_count: Number of remote devices considered
        object_count: Number of directory objects found before the run
        dry_run: Whether mutations were only planned
    """

    actions: Tuple[SyncAction, ...] = field(default=(), converter=tuple)
    device_count: int = 0
    object_count: int = 0
    dry_run: bool = False

    def _successful(self, kind: ActionKind) -> Tuple[str, ...]:
        return tuple(a.name for a in self.actions if a.kind is kind and a.success)

    @property
    def created(self) -> Tuple[str, ...]:
        return self._successful(ActionKind.CREATE)

    @property
    def skipped(self) -> Tuple[str, ...]:
        return self._successful(ActionKind.SKIP_DUPLICATE)

    @property
    def deleted(self) -> Tuple[str, ...]:
        return self._successful(ActionKind.DELETE)

    @property
    def failures(self) -> Tuple[SyncAction, ...]:
        return tuple(a for a in self.actions if not a.success)

    @property
    def ok(self) -> bool:
        """True when no per-item failure was recorded."""
        return not self.failures

    def summary(self) -> Dict[str, int]:
        return {
            "devices": self.device_count,
            "objects": self.object_count,
            "created": len(self.created),
            "skipped": len(self.skipped),
            "deleted": len(self.deleted),
            "failed": len(self.failures),
        }

    def export_json(self) -> str:
        """Export the report as JSON for the run transcript."""
        return json.dumps(
            {
                "dry_run": self.dry_run,
                "summary": self.summary(),
                "actions": [a.to_dict() for a in self.actions],
            },
            indent=2,
        )
