"""
autopilotsync Device Inventory

Read-only access to the Autopilot device inventory in Microsoft Graph.

Authentication is app-only: an MSAL confidential client signs a client
assertion with the certificate minted by the Certificate Provisioner.

Transport Modes:
- AutopilotInventoryClient: real Graph API
- StaticInventory: fixed device list for tests and offline runs
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence

import attrs
import msal
import requests
import structlog

from autopilotsync.core.config import DEFAULT_GRAPH_ENDPOINT
from autopilotsync.core.exceptions import InventoryError
from autopilotsync.core.types import Credential, RemoteDevice

AUTHORITY_URL = "https://login.microsoftonline.com/{tenant_id}"
GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]
REQUEST_TIMEOUT = 30.0


class DeviceInventory(Protocol):
    """Source of the full current list of remote devices."""

    def list_devices(self) -> List[RemoteDevice]:
        ...


# =============================================================================
# GRAPH CLIENT
# =============================================================================


@attrs.define
class AutopilotInventoryClient:
    """
    Microsoft Graph client for windowsAutopilotDeviceIdentities.

    Example:
        client = AutopilotInventoryClient(
            tenant_id=config.tenant_id,
            application_id=config.application_id,
            credential=credential,
            private_key_pem=store.load_private_key_pem(credential),
        )
        devices = client.list_devices()
    """

    tenant_id: str
    application_id: str
    credential: Credential
    private_key_pem: bytes = attrs.field(repr=False)
    endpoint: str = DEFAULT_GRAPH_ENDPOINT
    timeout: float = REQUEST_TIMEOUT
    session: requests.Session = attrs.Factory(requests.Session)

    _token: Optional[str] = attrs.field(default=None, repr=False)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    @property
    def is_connected(self) -> bool:
        return self._token is not None

    def connect(self) -> None:
        """
        Acquire an app-only access token.

        Raises:
            InventoryError: If MSAL cannot be configured or the token
                request is rejected
        """
        self._logger.info(
            "inventory_connect",
            tenant_id=self.tenant_id,
            application_id=self.application_id,
            thumbprint=self.credential.thumbprint,
        )
        try:
            app = msal.ConfidentialClientApplication(
                client_id=self.application_id,
                authority=AUTHORITY_URL.format(tenant_id=self.tenant_id),
                client_credential={
                    "private_key": self.private_key_pem.decode("ascii"),
                    "thumbprint": self.credential.thumbprint,
                },
            )
            result = app.acquire_token_for_client(scopes=GRAPH_SCOPES)
        except (ValueError, requests.RequestException) as e:
            raise InventoryError(f"Cannot authenticate to Microsoft Graph: {e}") from e

        if "access_token" not in result:
            self._logger.error(
                "inventory_token_failed",
                error=result.get("error"),
                error_description=result.get("error_description"),
                correlation_id=result.get("correlation_id"),
            )
            raise InventoryError(
                "Token acquisition failed: "
                f"{result.get('error_description') or result.get('error') or 'unknown error'}"
            )
        self._token = result["access_token"]

    def list_devices(self) -> List[RemoteDevice]:
        """
        Fetch every Autopilot device, following @odata.nextLink pages.

        Records without a registered device id are skipped.

        Raises:
            InventoryError: On HTTP, transport or payload errors
        """
        if self._token is None:
            self.connect()

        devices: List[RemoteDevice] = []
        skipped = 0
        url: Optional[str] = self.endpoint
        pages = 0
        while url:
            payload = self._get(url)
            pages += 1
            for record in payload.get("value", []):
                device = RemoteDevice.from_graph(record)
                if device is None:
                    skipped += 1
                    self._logger.warning(
                        "inventory_device_unregistered",
                        autopilot_id=record.get("id"),
                        serial_number=record.get("serialNumber"),
                    )
                    continue
                devices.append(device)
            url = payload.get("@odata.nextLink")

        self._logger.info(
            "inventory_listed",
            devices=len(devices),
            skipped=skipped,
            pages=pages,
        )
        return devices

    def _get(self, url: str) -> Dict[str, Any]:
        try:
            response = self.session.get(
                url,
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            self._logger.error("inventory_request_failed", url=url, error=str(e))
            raise InventoryError(f"Graph request failed: {e}") from e
        except ValueError as e:
            raise InventoryError(f"Graph returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise InventoryError("Graph returned an unexpected payload")
        return payload


# =============================================================================
# STATIC INVENTORY
# =============================================================================


@attrs.define
class StaticInventory:
    """Fixed device list."""

    devices: Sequence[RemoteDevice] = attrs.Factory(list)

    @classmethod
    def from_ids(cls, *device_ids: str) -> "StaticInventory":
        return cls([RemoteDevice(id=i) for i in device_ids])

    def list_devices(self) -> List[RemoteDevice]:
        return list(self.devices)
