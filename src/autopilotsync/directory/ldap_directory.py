"""
autopilotsync LDAP Directory

Active Directory access over LDAP via ldap3.

Binding:
- NTLM with `bind_user` / `bind_password` when a user is configured
- SASL Kerberos (the process's own ticket) otherwise
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import attrs
import structlog
from ldap3 import KERBEROS, MODIFY_REPLACE, NTLM, SASL, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException

from autopilotsync.core.exceptions import DirectoryError
from autopilotsync.core.types import DirectoryObject
from autopilotsync.directory.base import (
    ATTR_ALT_SECURITY_IDENTITIES,
    ATTR_NAME,
    ATTR_SAM_ACCOUNT_NAME,
    ATTR_SPN,
    ATTR_USER_ACCOUNT_CONTROL,
    COMPUTER_FILTER,
    UAC_WORKSTATION_TRUST_ACCOUNT,
    computer_dn,
    sam_account_name,
)

PAGE_SIZE = 500
RECEIVE_TIMEOUT = 30
SEARCH_ATTRIBUTES = [
    ATTR_NAME,
    ATTR_SAM_ACCOUNT_NAME,
    ATTR_SPN,
    ATTR_ALT_SECURITY_IDENTITIES,
]


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _as_str(value: Any) -> str:
    values = _as_list(value)
    return values[0] if values else ""


def entry_to_object(entry: Dict[str, Any]) -> Optional[DirectoryObject]:
    """Convert an ldap3 search response entry. Referrals yield None."""
    if entry.get("type") != "searchResEntry":
        return None
    attributes = entry.get("attributes") or {}
    name = _as_str(attributes.get(ATTR_NAME))
    if not name:
        return None
    return DirectoryObject(
        name=name,
        distinguished_name=entry.get("dn", ""),
        sam_account_name=_as_str(attributes.get(ATTR_SAM_ACCOUNT_NAME)),
        service_principal_names=_as_list(attributes.get(ATTR_SPN)),
        alt_security_identities=_as_list(attributes.get(ATTR_ALT_SECURITY_IDENTITIES)),
    )


@attrs.define
class LdapDirectory:
    """
    ldap3-backed directory service.

    Example:
        directory = LdapDirectory("ldaps://dc01.example.com")
        directory.connect()
        objects = directory.search_objects("OU=Autopilot,DC=example,DC=com")
    """

    server_uri: str
    bind_user: str = ""
    bind_password: str = attrs.field(default="", repr=False)
    page_size: int = PAGE_SIZE

    _connection: Optional[Connection] = None
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            raise DirectoryError("Directory is not connected")
        return self._connection

    def connect(self) -> None:
        """
        Bind to the directory.

        Raises:
            DirectoryError: If the server is unreachable or the bind fails
        """
        self._logger.info(
            "directory_connect",
            server=self.server_uri,
            auth="ntlm" if self.bind_user else "kerberos",
        )
        try:
            server = Server(self.server_uri)
            if self.bind_user:
                connection = Connection(
                    server,
                    user=self.bind_user,
                    password=self.bind_password,
                    authentication=NTLM,
                    receive_timeout=RECEIVE_TIMEOUT,
                )
            else:
                connection = Connection(
                    server,
                    authentication=SASL,
                    sasl_mechanism=KERBEROS,
                    receive_timeout=RECEIVE_TIMEOUT,
                )
            if not connection.bind():
                raise DirectoryError(
                    f"Bind to {self.server_uri} failed: {connection.result.get('description')}",
                    code=connection.result.get("result"),
                )
        except LDAPException as e:
            raise DirectoryError(f"Cannot connect to {self.server_uri}: {e}") from e

        self._connection = connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.unbind()
            self._connection = None

    def search_objects(
        self, search_base: str, ldap_filter: str = COMPUTER_FILTER
    ) -> List[DirectoryObject]:
        """
        Paged subtree search under `search_base`.

        Raises:
            DirectoryError: If any page of the search ends with a non-success
                result (missing base, access denied, size limit, ...)
        """
        try:
            entries = self.connection.extend.standard.paged_search(
                search_base=search_base,
                search_filter=ldap_filter,
                search_scope=SUBTREE,
                attributes=SEARCH_ATTRIBUTES,
                paged_size=self.page_size,
                generator=True,
            )
            objects = [o for o in map(entry_to_object, entries) if o is not None]
        except LDAPException as e:
            raise DirectoryError(f"Search under {search_base} failed: {e}") from e

        # paged_search stops quietly on an error unless raise_exceptions is set
        result = self.connection.result or {}
        code = result.get("result", 0)
        if code != 0:
            raise DirectoryError(
                f"Search under {search_base} failed: {result.get('description')}",
                code=code,
            )

        self._logger.debug(
            "directory_search",
            search_base=search_base,
            filter=ldap_filter,
            count=len(objects),
        )
        return objects

    def create_computer(
        self,
        search_base: str,
        name: str,
        short_name: str,
        service_principal_names: Sequence[str],
    ) -> DirectoryObject:
        dn = computer_dn(name, search_base)
        sam = sam_account_name(short_name)
        attributes = {
            ATTR_SAM_ACCOUNT_NAME: sam,
            ATTR_USER_ACCOUNT_CONTROL: str(UAC_WORKSTATION_TRUST_ACCOUNT),
            ATTR_SPN: list(service_principal_names),
        }
        self._check(
            lambda: self.connection.add(dn, ["computer"], attributes),
            f"Create {dn}",
        )
        return DirectoryObject(
            name=name,
            distinguished_name=dn,
            sam_account_name=sam,
            service_principal_names=service_principal_names,
        )

    def set_attribute(self, dn: str, attribute: str, values: Sequence[str]) -> None:
        self._check(
            lambda: self.connection.modify(dn, {attribute: [(MODIFY_REPLACE, list(values))]}),
            f"Set {attribute} on {dn}",
        )

    def delete_object(self, dn: str) -> None:
        self._check(lambda: self.connection.delete(dn), f"Delete {dn}")

    def _check(self, operation: Any, description: str) -> None:
        try:
            succeeded = operation()
        except LDAPException as e:
            raise DirectoryError(f"{description} failed: {e}") from e
        if not succeeded:
            result = self.connection.result
            raise DirectoryError(
                f"{description} failed: {result.get('description')} {result.get('message', '')}".strip(),
                code=result.get("result"),
            )
