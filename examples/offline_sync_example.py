#!/usr/bin/env python3
"""
Offline Reconciliation Example

Runs the reconciliation engine against a simulated directory and a static
inventory, first as a what-if plan and then for real, and prints the
resulting report.

Features:
1. Creation of missing computer objects with certificate mapping
2. Duplicate device records skipped
3. Stale object cleanup
4. Dry-run planning
5. JSON report export
"""

from autopilotsync.core.logging import configure_logging
from autopilotsync.directory import InMemoryDirectory
from autopilotsync.inventory import StaticInventory
from autopilotsync.sync import ReconciliationEngine


SEARCH_BASE = "OU=Autopilot,OU=Computers,DC=example,DC=com"
ISSUER = "DC=com,DC=example,CN=Example Issuing CA"


def main():
    """Demonstrate a reconciliation run without AD or Graph."""

    configure_logging()

    print("=" * 70)
    print("autopilotsync - Offline Reconciliation")
    print("=" * 70)
    print()

    directory = InMemoryDirectory()
    directory.add_existing("retired-device-0001", SEARCH_BASE)
    directory.add_existing("3f1c2f7e-8b3a-4c55-9f63-0d2b4a0c9e11", SEARCH_BASE)

    inventory = StaticInventory.from_ids(
        "3f1c2f7e-8b3a-4c55-9f63-0d2b4a0c9e11",
        "9a0d7c52-11e4-4b0f-8d6a-2c8f1e7b3a90",
        "9a0d7c52-11e4-4b0f-8d6a-2c8f1e7b3a90",
    )
    devices = inventory.list_devices()

    for title, dry_run in (("1. What-if", True), ("2. Apply", False)):
        print(title)
        print("-" * 40)
        engine = ReconciliationEngine(
            directory=directory,
            search_base=SEARCH_BASE,
            certificate_issuer=ISSUER,
            dry_run=dry_run,
        )
        report = engine.reconcile(devices, directory.search_objects(SEARCH_BASE))
        for key, value in report.summary().items():
            print(f"   {key}: {value}")
        print()

    print("3. Directory after run")
    print("-" * 40)
    for obj in directory.search_objects(SEARCH_BASE):
        print(f"   {obj.distinguished_name}")
        print(f"      sAMAccountName: {obj.sam_account_name}")
        print(f"      SPN: {', '.join(obj.service_principal_names)}")
        print(f"      altSecurityIdentities: {', '.join(obj.alt_security_identities)}")
    print()

    print("4. Report JSON")
    print("-" * 40)
    print(report.export_json())


if __name__ == "__main__":
    main()
