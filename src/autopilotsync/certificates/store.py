"""
autopilotsync Credential Store

File-backed trust store keyed by certificate subject. Each credential is a
pair of files named after its SHA-1 thumbprint:

    <THUMBPRINT>.pem   X.509 certificate
    <THUMBPRINT>.key   PKCS#8 private key, mode 0600

The store never writes a private key anywhere else.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, List

import attrs
import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from autopilotsync.core.exceptions import ConfigurationError, ProvisioningError
from autopilotsync.core.types import Credential

CERT_SUFFIX = ".pem"
KEY_SUFFIX = ".key"


def parse_subject(subject: str) -> x509.Name:
    """
    Parse a subject string into an X.509 name.

    Accepts RFC 4514 strings ("CN=AutopilotSync,O=Example") or a bare
    common name ("AutopilotSync").

    Raises:
        ConfigurationError: If the subject is empty or malformed
    """
    subject = subject.strip()
    if not subject:
        raise ConfigurationError("Certificate subject must not be empty")
    if "=" not in subject:
        subject = f"CN={subject}"
    try:
        return x509.Name.from_rfc4514_string(subject)
    except ValueError as e:
        raise ConfigurationError(f"Invalid certificate subject {subject!r}: {e}") from e


def thumbprint(certificate: x509.Certificate) -> str:
    """SHA-1 fingerprint as upper-case hex, as Windows displays it."""
    return certificate.fingerprint(hashes.SHA1()).hex().upper()  # noqa: S303


def to_credential(certificate: x509.Certificate, certificate_path: Path) -> Credential:
    return Credential(
        subject=certificate.subject.rfc4514_string(),
        thumbprint=thumbprint(certificate),
        not_valid_before=certificate.not_valid_before_utc,
        not_valid_after=certificate.not_valid_after_utc,
        certificate=certificate,
        certificate_path=certificate_path,
        key_path=certificate_path.with_suffix(KEY_SUFFIX),
    )


@attrs.define
class CredentialStore:
    """
    Trust store rooted at a directory.

    Example:
        store = CredentialStore(Path("/var/lib/autopilotsync/store"))
        for credential in store.find("CN=AutopilotSync"):
            print(credential.thumbprint)
    """

    path: Path = attrs.field(converter=Path)

    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def credentials(self) -> List[Credential]:
        """
        Enumerate every credential in the store.

        Unparseable certificate files are logged and ignored.
        """
        if not self.path.is_dir():
            return []

        found = []
        for cert_path in sorted(self.path.glob(f"*{CERT_SUFFIX}")):
            try:
                certificate = x509.load_pem_x509_certificate(cert_path.read_bytes())
            except (OSError, ValueError) as e:
                self._logger.warning(
                    "store_entry_unreadable",
                    path=str(cert_path),
                    error=str(e),
                )
                continue
            found.append(to_credential(certificate, cert_path))
        return found

    def find(self, subject: str) -> List[Credential]:
        """Enumerate credentials whose subject equals `subject`."""
        name = parse_subject(subject)
        return [c for c in self.credentials() if c.certificate.subject == name]

    def add(self, certificate: x509.Certificate, private_key: rsa.RSAPrivateKey) -> Credential:
        """
        Persist a certificate and its private key.

        Raises:
            ProvisioningError: If the store cannot be written
        """
        cert_path = self.path / f"{thumbprint(certificate)}{CERT_SUFFIX}"
        key_path = cert_path.with_suffix(KEY_SUFFIX)
        key_bytes = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "wb") as fh:
                fh.write(key_bytes)
            cert_path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
        except OSError as e:
            raise ProvisioningError(f"Cannot write to credential store {self.path}: {e}") from e

        credential = to_credential(certificate, cert_path)
        self._logger.info(
            "store_credential_added",
            subject=credential.subject,
            thumbprint=credential.thumbprint,
        )
        return credential

    def remove(self, credential: Credential) -> None:
        """
        Delete a credential (certificate and private key).

        Raises:
            ProvisioningError: If the files cannot be removed
        """
        try:
            for path in (credential.certificate_path, credential.key_path):
                if path is not None and path.exists():
                    path.unlink()
        except OSError as e:
            raise ProvisioningError(
                f"Cannot remove credential {credential.thumbprint}: {e}"
            ) from e

        self._logger.info(
            "store_credential_removed",
            subject=credential.subject,
            thumbprint=credential.thumbprint,
        )

    def remove_subject(self, subject: str) -> int:
        """Delete every credential with `subject`. Returns the count removed."""
        matches = self.find(subject)
        for credential in matches:
            self.remove(credential)
        return len(matches)

    def load_private_key_pem(self, credential: Credential) -> bytes:
        """
        Read the private key of a stored credential, for in-process use.

        Raises:
            ProvisioningError: If the key is missing or unreadable
        """
        if credential.key_path is None:
            raise ProvisioningError(f"Credential {credential.thumbprint} has no private key")
        try:
            return credential.key_path.read_bytes()
        except OSError as e:
            raise ProvisioningError(
                f"Cannot read private key for {credential.thumbprint}: {e}"
            ) from e
