"""
Pytest configuration and shared fixtures for autopilotsync tests.
"""

import logging

import pytest
import structlog

from autopilotsync.certificates import CertificateProvisioner, CredentialStore
from autopilotsync.core.config import SyncConfig
from autopilotsync.core.prompts import auto_confirm
from autopilotsync.core.types import Credential, RemoteDevice
from autopilotsync.directory.memory import InMemoryDirectory
from autopilotsync.sync.engine import ReconciliationEngine


SEARCH_BASE = "OU=Autopilot,OU=Computers,DC=example,DC=com"
ISSUER = "DC=com,DC=example,CN=Example Issuing CA"
SUBJECT = "CN=AutopilotSync"


# =============================================================================
# LOGGING ISOLATION
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging() between tests."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


# =============================================================================
# DIRECTORY / ENGINE FIXTURES
# =============================================================================


@pytest.fixture
def search_base() -> str:
    return SEARCH_BASE


@pytest.fixture
def issuer() -> str:
    return ISSUER


@pytest.fixture
def directory() -> InMemoryDirectory:
    """Empty simulated directory."""
    return InMemoryDirectory()


@pytest.fixture
def engine(directory: InMemoryDirectory) -> ReconciliationEngine:
    """Engine committing changes to the simulated directory."""
    return ReconciliationEngine(
        directory=directory,
        search_base=SEARCH_BASE,
        certificate_issuer=ISSUER,
    )


# =============================================================================
# CREDENTIAL FIXTURES
# =============================================================================


@pytest.fixture
def store(tmp_path) -> CredentialStore:
    return CredentialStore(tmp_path / "store")


@pytest.fixture
def provisioner(store: CredentialStore) -> CertificateProvisioner:
    """Provisioner that confirms every prompt."""
    return CertificateProvisioner(store=store, confirm=auto_confirm)


@pytest.fixture
def credential(provisioner: CertificateProvisioner) -> Credential:
    return provisioner.ensure_credential(SUBJECT, 12)


@pytest.fixture
def sync_config(store: CredentialStore, tmp_path) -> SyncConfig:
    return SyncConfig(
        tenant_id="11111111-1111-1111-1111-111111111111",
        application_id="22222222-2222-2222-2222-222222222222",
        certificate_subject=SUBJECT,
        credential_store=store.path,
        certificate_issuer=ISSUER,
        search_base=SEARCH_BASE,
        ldap_server="ldaps://dc01.example.com",
        log_path=tmp_path / "logs" / "sync.log",
    )


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def make_devices(*ids: str):
    """Helper to create remote devices from ids."""
    return [RemoteDevice(id=i) for i in ids]


def seeded_directory(*names: str) -> InMemoryDirectory:
    """Helper to create a simulated directory holding `names`."""
    directory = InMemoryDirectory()
    for name in names:
        directory.add_existing(name, SEARCH_BASE)
    return directory


# =============================================================================
# PYTEST MARKERS
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring real AD / Graph access"
    )
