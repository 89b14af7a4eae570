"""
autopilotsync Directory Interface

Operations the reconciliation engine needs from the directory service.
Every implementation raises DirectoryError when an operation fails.
"""

from __future__ import annotations

from typing import List, Protocol, Sequence

from ldap3.utils.dn import escape_rdn

from autopilotsync.core.types import DirectoryObject

COMPUTER_FILTER = "(objectClass=computer)"

ATTR_NAME = "name"
ATTR_SAM_ACCOUNT_NAME = "sAMAccountName"
ATTR_SPN = "servicePrincipalName"
ATTR_ALT_SECURITY_IDENTITIES = "altSecurityIdentities"
ATTR_USER_ACCOUNT_CONTROL = "userAccountControl"

# WORKSTATION_TRUST_ACCOUNT
UAC_WORKSTATION_TRUST_ACCOUNT = 0x1000


def computer_dn(name: str, search_base: str) -> str:
    """Distinguished name of a computer object created under `search_base`."""
    return f"CN={escape_rdn(name)},{search_base}"


def sam_account_name(short_name: str) -> str:
    """Computer account names carry a trailing '$'."""
    return f"{short_name}$"


class DirectoryService(Protocol):
    """Directory operations used by the reconciliation engine."""

    def connect(self) -> None:
        ...

    def close(self) -> None:
        ...

    def search_objects(
        self, search_base: str, ldap_filter: str = COMPUTER_FILTER
    ) -> List[DirectoryObject]:
        ...

    def create_computer(
        self,
        search_base: str,
        name: str,
        short_name: str,
        service_principal_names: Sequence[str],
    ) -> DirectoryObject:
        ...

    def set_attribute(self, dn: str, attribute: str, values: Sequence[str]) -> None:
        ...

    def delete_object(self, dn: str) -> None:
        ...
