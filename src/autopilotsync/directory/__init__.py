"""
autopilotsync Directory Module

Components:
- base: DirectoryService protocol and attribute names
- ldap_directory: Active Directory over LDAP (ldap3)
- memory: simulated in-memory directory
"""

from autopilotsync.directory.base import (
    ATTR_ALT_SECURITY_IDENTITIES,
    COMPUTER_FILTER,
    DirectoryService,
    computer_dn,
)
from autopilotsync.directory.ldap_directory import LdapDirectory
from autopilotsync.directory.memory import InMemoryDirectory

__all__ = [
    "ATTR_ALT_SECURITY_IDENTITIES",
    "COMPUTER_FILTER",
    "DirectoryService",
    "InMemoryDirectory",
    "LdapDirectory",
    "computer_dn",
]
