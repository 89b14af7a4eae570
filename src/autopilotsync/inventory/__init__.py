"""
autopilotsync Inventory Module

Remote device inventory sources.
"""

from autopilotsync.inventory.client import (
    AutopilotInventoryClient,
    DeviceInventory,
    StaticInventory,
)

__all__ = [
    "AutopilotInventoryClient",
    "DeviceInventory",
    "StaticInventory",
]
