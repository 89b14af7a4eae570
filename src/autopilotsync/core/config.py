"""
autopilotsync Configuration

Static configuration edited before a run, read from a YAML file:

    certificate:
      store_path: /var/lib/autopilotsync/store
      subject: CN=AutopilotSync
      validity_months: 24
      export_path: /var/lib/autopilotsync/AutopilotSync.cer

    sync:
      tenant_id: 00000000-0000-0000-0000-000000000000
      application_id: 00000000-0000-0000-0000-000000000000
      certificate_subject: CN=AutopilotSync
      credential_store: /var/lib/autopilotsync/store
      certificate_issuer: DC=com,DC=example,CN=Example Issuing CA
      search_base: OU=Autopilot,OU=Computers,DC=example,DC=com
      ldap_server: ldaps://dc01.example.com
      log_path: /var/log/autopilotsync/sync.log

Each section is parsed into a frozen attrs class. Required fields must be
non-empty; violations raise ConfigurationError before anything touches the
network.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import attrs
import yaml
from attrs import field, validators

from autopilotsync.core.exceptions import ConfigurationError


LDAP_PASSWORD_ENV = "AUTOPILOTSYNC_LDAP_PASSWORD"

DEFAULT_GRAPH_ENDPOINT = (
    "https://graph.microsoft.com/beta/deviceManagement/windowsAutopilotDeviceIdentities"
)

_required = [validators.instance_of(str), validators.min_len(1)]


def _to_path(value: Any) -> Path:
    return value if isinstance(value, Path) else Path(str(value)).expanduser()


def _to_optional_path(value: Any) -> Optional[Path]:
    if value in (None, ""):
        return None
    return _to_path(value)


# =============================================================================
# SECTIONS
# =============================================================================


@attrs.define(frozen=True)
class CertificateConfig:
    """
    Certificate Provisioner settings.

    Attributes:
        store_path: Directory holding the trust store
        subject: Subject of the authentication certificate
        validity_months: Certificate lifetime in calendar months
        export_path: Where the public certificate is written
        log_path: Optional JSON-lines transcript of the run
    """

    store_path: Path = field(converter=_to_path)
    subject: str = field(validator=_required)
    export_path: Path = field(converter=_to_path)
    validity_months: int = field(
        default=12,
        converter=int,
        validator=validators.ge(1),
    )
    log_path: Optional[Path] = field(default=None, converter=_to_optional_path)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CertificateConfig":
        return _build(cls, data, "certificate")

    @classmethod
    def from_file(cls, path: Path) -> "CertificateConfig":
        return cls.from_mapping(read_section(path, "certificate"))


@attrs.define(frozen=True)
class SyncConfig:
    """
    Reconciliation run settings.

    Attributes:
        tenant_id: Entra ID tenant id
        application_id: App registration (client) id used for Graph
        certificate_subject: Subject of the credential used for Graph auth
        credential_store: Trust store holding that credential
        certificate_issuer: Issuer string written into altSecurityIdentities
        search_base: DN of the managed search scope
        ldap_server: LDAP server URI (ldap:// or ldaps://)
        ldap_user: NTLM bind user; Kerberos (SASL) is used when empty
        ldap_password: NTLM bind password, read from the environment
        log_path: Durable run transcript
        graph_endpoint: Autopilot device identities collection URL
    """

    tenant_id: str = field(validator=_required)
    application_id: str = field(validator=_required)
    certificate_subject: str = field(validator=_required)
    credential_store: Path = field(converter=_to_path)
    certificate_issuer: str = field(validator=_required)
    search_base: str = field(validator=_required)
    ldap_server: str = field(validator=_required)
    ldap_user: str = ""
    ldap_password: str = field(default="", repr=False)
    log_path: Optional[Path] = field(default=None, converter=_to_optional_path)
    graph_endpoint: str = field(default=DEFAULT_GRAPH_ENDPOINT, validator=_required)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SyncConfig":
        values = dict(data)
        if not values.get("ldap_password"):
            values["ldap_password"] = os.environ.get(LDAP_PASSWORD_ENV, "")
        return _build(cls, values, "sync")

    @classmethod
    def from_file(cls, path: Path) -> "SyncConfig":
        return cls.from_mapping(read_section(path, "sync"))


# =============================================================================
# LOADING
# =============================================================================


def read_section(path: Path, section: str) -> Dict[str, Any]:
    """
    Read one top-level section of a YAML configuration file.

    Raises:
        ConfigurationError: If the file is unreadable, is not a mapping
            or lacks the section
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration {path} must be a mapping")
    values = data.get(section)
    if not isinstance(values, dict):
        raise ConfigurationError(f"Configuration {path} has no '{section}' section")
    return values


def _build(cls: Any, data: Mapping[str, Any], section: str) -> Any:
    known = {a.name for a in attrs.fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in '{section}' section: {', '.join(unknown)}"
        )
    missing = sorted(
        a.name
        for a in attrs.fields(cls)
        if a.default is attrs.NOTHING and data.get(a.name) in (None, "")
    )
    if missing:
        raise ConfigurationError(
            f"Missing required keys in '{section}' section: {', '.join(missing)}"
        )
    try:
        return cls(**{k: v for k, v in data.items() if v is not None})
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid '{section}' section: {e}") from e
