"""
autopilotsync Simulated Directory

In-memory directory with the same contract as LdapDirectory. Names listed
in `fail_on` make every mutation touching that object raise DirectoryError,
which exercises the engine's per-item failure handling.
"""

from __future__ import annotations

from typing import Dict, List, Sequence, Set, Tuple

import attrs

from autopilotsync.core.exceptions import DirectoryError
from autopilotsync.core.types import DirectoryObject, match_key
from autopilotsync.directory.base import (
    ATTR_ALT_SECURITY_IDENTITIES,
    ATTR_SPN,
    COMPUTER_FILTER,
    computer_dn,
    sam_account_name,
)

# LDAP_ENTRY_ALREADY_EXISTS / LDAP_NO_SUCH_OBJECT / LDAP_UNWILLING_TO_PERFORM
ENTRY_ALREADY_EXISTS = 68
NO_SUCH_OBJECT = 32
UNWILLING_TO_PERFORM = 53

_ATTRIBUTE_FIELDS = {
    ATTR_SPN: "service_principal_names",
    ATTR_ALT_SECURITY_IDENTITIES: "alt_security_identities",
}


@attrs.define
class InMemoryDirectory:
    """
    Simulated directory keyed by distinguished name.

    Attributes:
        objects: Stored objects, keyed by case-folded DN
        fail_on: Object names whose mutations fail
        fail_operations: Which mutations fail for those names
        operations: (operation, dn) log of successful mutations
    """

    objects: Dict[str, DirectoryObject] = attrs.Factory(dict)
    fail_on: Set[str] = attrs.Factory(set)
    fail_operations: Set[str] = attrs.Factory(lambda: {"create", "modify", "delete"})
    operations: List[Tuple[str, str]] = attrs.Factory(list)
    connected: bool = False

    def connect(self) -> None:
        self.connected = True

    def close(self) -> None:
        self.connected = False

    def add_existing(self, name: str, search_base: str) -> DirectoryObject:
        """Seed an object without recording an operation."""
        obj = DirectoryObject(name=name, distinguished_name=computer_dn(name, search_base))
        self.objects[obj.distinguished_name.casefold()] = obj
        return obj

    def names(self) -> List[str]:
        return sorted(o.name for o in self.objects.values())

    def get(self, name: str) -> DirectoryObject:
        for obj in self.objects.values():
            if obj.key == match_key(name):
                return obj
        raise KeyError(name)

    def search_objects(
        self, search_base: str, ldap_filter: str = COMPUTER_FILTER
    ) -> List[DirectoryObject]:
        """
        Every stored object under `search_base`.

        Only computer objects are ever stored, so `ldap_filter` is accepted
        for DirectoryService compatibility and not evaluated.
        """
        suffix = f",{search_base}".casefold()
        return [
            obj
            for key, obj in sorted(self.objects.items())
            if key.endswith(suffix)
        ]

    def create_computer(
        self,
        search_base: str,
        name: str,
        short_name: str,
        service_principal_names: Sequence[str],
    ) -> DirectoryObject:
        self._maybe_fail(name, "create")
        dn = computer_dn(name, search_base)
        if dn.casefold() in self.objects:
            raise DirectoryError(f"Create {dn} failed: entryAlreadyExists", code=ENTRY_ALREADY_EXISTS)
        obj = DirectoryObject(
            name=name,
            distinguished_name=dn,
            sam_account_name=sam_account_name(short_name),
            service_principal_names=service_principal_names,
        )
        self.objects[dn.casefold()] = obj
        self.operations.append(("create", dn))
        return obj

    def set_attribute(self, dn: str, attribute: str, values: Sequence[str]) -> None:
        obj = self._lookup(dn)
        self._maybe_fail(obj.name, "modify")
        field_name = _ATTRIBUTE_FIELDS.get(attribute)
        if field_name is None:
            raise DirectoryError(
                f"Set {attribute} on {dn} failed: unsupported attribute",
                code=UNWILLING_TO_PERFORM,
            )
        self.objects[dn.casefold()] = attrs.evolve(obj, **{field_name: tuple(values)})
        self.operations.append(("modify", dn))

    def delete_object(self, dn: str) -> None:
        obj = self._lookup(dn)
        self._maybe_fail(obj.name, "delete")
        del self.objects[dn.casefold()]
        self.operations.append(("delete", dn))

    def _lookup(self, dn: str) -> DirectoryObject:
        try:
            return self.objects[dn.casefold()]
        except KeyError:
            raise DirectoryError(f"{dn}: noSuchObject", code=NO_SUCH_OBJECT) from None

    def _maybe_fail(self, name: str, operation: str) -> None:
        if operation not in self.fail_operations:
            return
        if match_key(name) in {match_key(n) for n in self.fail_on}:
            raise DirectoryError(
                f"Simulated {operation} failure for {name}",
                code=UNWILLING_TO_PERFORM,
            )
