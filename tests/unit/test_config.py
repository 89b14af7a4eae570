"""
Unit tests for autopilotsync.core.config module.
"""

from pathlib import Path

import pytest

from autopilotsync.core.config import (
    DEFAULT_GRAPH_ENDPOINT,
    LDAP_PASSWORD_ENV,
    CertificateConfig,
    SyncConfig,
    read_section,
)
from autopilotsync.core.exceptions import ConfigurationError


SYNC_SECTION = {
    "tenant_id": "tenant",
    "application_id": "app",
    "certificate_subject": "CN=AutopilotSync",
    "credential_store": "/tmp/store",
    "certificate_issuer": "DC=com,DC=example,CN=CA",
    "search_base": "OU=Autopilot,DC=example,DC=com",
    "ldap_server": "ldaps://dc01.example.com",
}


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "autopilotsync.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestCertificateConfig:
    """Tests for CertificateConfig."""

    def test_from_file(self, tmp_path):
        path = write_config(
            tmp_path,
            "certificate:\n"
            "  store_path: /var/lib/aps/store\n"
            "  subject: CN=AutopilotSync\n"
            "  validity_months: 24\n"
            "  export_path: /var/lib/aps/AutopilotSync.cer\n"
            "  log_path: /var/log/aps/create-certificate.log\n",
        )
        config = CertificateConfig.from_file(path)
        assert config.store_path == Path("/var/lib/aps/store")
        assert config.subject == "CN=AutopilotSync"
        assert config.validity_months == 24
        assert config.export_path == Path("/var/lib/aps/AutopilotSync.cer")
        assert config.log_path == Path("/var/log/aps/create-certificate.log")

    def test_validity_defaults_to_twelve_months(self):
        config = CertificateConfig.from_mapping(
            {"store_path": "s", "subject": "CN=X", "export_path": "x.cer"}
        )
        assert config.validity_months == 12
        assert config.log_path is None

    @pytest.mark.parametrize("months", [0, -1, "soon"])
    def test_invalid_validity(self, months):
        with pytest.raises(ConfigurationError):
            CertificateConfig.from_mapping(
                {
                    "store_path": "s",
                    "subject": "CN=X",
                    "export_path": "x.cer",
                    "validity_months": months,
                }
            )

    def test_missing_subject(self):
        with pytest.raises(ConfigurationError, match="subject"):
            CertificateConfig.from_mapping({"store_path": "s", "export_path": "x.cer"})

    def test_frozen(self):
        config = CertificateConfig.from_mapping(
            {"store_path": "s", "subject": "CN=X", "export_path": "x.cer"}
        )
        with pytest.raises(AttributeError):
            config.subject = "CN=Y"


class TestSyncConfig:
    """Tests for SyncConfig."""

    def test_from_mapping_defaults(self, monkeypatch):
        monkeypatch.delenv(LDAP_PASSWORD_ENV, raising=False)
        config = SyncConfig.from_mapping(SYNC_SECTION)
        assert config.graph_endpoint == DEFAULT_GRAPH_ENDPOINT
        assert config.ldap_user == ""
        assert config.log_path is None
        assert config.credential_store == Path("/tmp/store")

    @pytest.mark.parametrize("key", sorted(SYNC_SECTION))
    def test_required_fields(self, key):
        values = dict(SYNC_SECTION)
        values[key] = ""
        with pytest.raises(ConfigurationError, match=key):
            SyncConfig.from_mapping(values)

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="searchbase"):
            SyncConfig.from_mapping({**SYNC_SECTION, "searchbase": "x"})

    def test_password_from_environment(self, monkeypatch):
        monkeypatch.setenv(LDAP_PASSWORD_ENV, "s3cret")
        config = SyncConfig.from_mapping({**SYNC_SECTION, "ldap_user": "EXAMPLE\\svc"})
        assert config.ldap_password == "s3cret"
        assert "s3cret" not in repr(config)


class TestReadSection:
    """Tests for YAML loading."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            read_section(tmp_path / "absent.yaml", "sync")

    def test_invalid_yaml(self, tmp_path):
        path = write_config(tmp_path, "sync: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            read_section(path, "sync")

    def test_missing_section(self, tmp_path):
        path = write_config(tmp_path, "certificate:\n  subject: CN=X\n")
        with pytest.raises(ConfigurationError, match="'sync'"):
            read_section(path, "sync")

    def test_not_a_mapping(self, tmp_path):
        path = write_config(tmp_path, "- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            read_section(path, "sync")
