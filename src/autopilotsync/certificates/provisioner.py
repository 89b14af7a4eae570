"""
autopilotsync Certificate Provisioner

Mints the self-signed client-authentication certificate the sync job uses
to authenticate against Microsoft Graph, and exports its public part for
upload to the app registration.

Certificate profile:
- RSA 2048, SHA-256 signature
- KeyUsage: digitalSignature (critical)
- ExtendedKeyUsage: clientAuth
- Validity: now .. now + N calendar months
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Tuple

import attrs
import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID

from autopilotsync.certificates.store import CredentialStore, parse_subject
from autopilotsync.core.exceptions import (
    ConfigurationError,
    ExportError,
    OperationDeclined,
    ProvisioningError,
)
from autopilotsync.core.prompts import Confirm, interactive_confirm
from autopilotsync.core.types import Credential

KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537
PEM_SUFFIXES = (".pem", ".crt")


def add_months(moment: datetime, months: int) -> datetime:
    """
    Add calendar months, clamping the day to the end of the target month.

    Example:
        add_months(datetime(2024, 1, 31), 1) -> datetime(2024, 2, 29)
    """
    index = moment.month - 1 + months
    year = moment.year + index // 12
    month = index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@attrs.define
class CertificateProvisioner:
    """
    Ensures exactly one authentication credential per subject.

    Destructive steps (replacing a credential, overwriting an export) go
    through the `confirm` capability. A declined confirmation raises
    OperationDeclined.

    Example:
        provisioner = CertificateProvisioner(CredentialStore(store_path))
        credential = provisioner.ensure_credential("CN=AutopilotSync", 24)
        provisioner.export_public(credential, Path("AutopilotSync.cer"))
    """

    store: CredentialStore
    confirm: Confirm = interactive_confirm

    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def ensure_credential(self, subject: str, validity_months: int) -> Credential:
        """
        Create the credential for `subject`, replacing any existing one.

        Args:
            subject: Certificate subject (RFC 4514 or bare common name)
            validity_months: Lifetime in calendar months, at least 1

        Returns:
            The newly created credential

        Raises:
            ConfigurationError: If subject or validity is invalid
            OperationDeclined: If the operator keeps the existing credential
            ProvisioningError: If generation or the store fails
        """
        name = parse_subject(subject)
        if validity_months < 1:
            raise ConfigurationError(
                f"Validity must be at least one month, got {validity_months}"
            )

        existing = self.store.find(subject)
        if existing:
            self._logger.info(
                "credential_exists",
                subject=subject,
                thumbprints=[c.thumbprint for c in existing],
            )
            if not self.confirm(
                f"A certificate with subject {subject} already exists. Replace it?"
            ):
                self._logger.info("credential_replace_declined", subject=subject)
                raise OperationDeclined(f"Kept existing certificate for {subject}")
            self.store.remove_subject(subject)

        try:
            certificate, private_key = self._generate(name, validity_months)
        except Exception as e:
            self._logger.error("credential_generation_failed", subject=subject, error=str(e))
            raise ProvisioningError(f"Certificate generation failed: {e}") from e

        credential = self.store.add(certificate, private_key)
        self._logger.info(
            "credential_created",
            subject=credential.subject,
            thumbprint=credential.thumbprint,
            not_valid_after=credential.not_valid_after.isoformat(),
        )
        return credential

    def _generate(
        self, name: x509.Name, validity_months: int
    ) -> Tuple[x509.Certificate, rsa.RSAPrivateKey]:
        private_key = rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT,
            key_size=KEY_SIZE,
        )
        now = datetime.now(timezone.utc)
        public_key = private_key.public_key()

        certificate = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(public_key)
            .serial_number(x509.random_serial_number())
            # Backdate slightly for clock skew between this host and Entra ID
            .not_valid_before(now - timedelta(minutes=10))
            .not_valid_after(add_months(now, validity_months))
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]),
                critical=False,
            )
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(public_key),
                critical=False,
            )
            .sign(private_key, hashes.SHA256())
        )
        return certificate, private_key

    def export_public(self, credential: Credential, path: Path) -> Path:
        """
        Write the public certificate (no private key) to `path`.

        DER is written unless the path ends in .pem or .crt.

        Raises:
            OperationDeclined: If the operator keeps an existing file
            ExportError: If the file cannot be replaced or written
        """
        path = Path(path)
        if path.exists():
            if not self.confirm(f"{path} already exists. Overwrite it?"):
                self._logger.info("export_overwrite_declined", path=str(path))
                raise OperationDeclined(f"Kept existing file {path}")
            try:
                path.unlink()
            except OSError as e:
                raise ExportError(f"Cannot remove existing {path}: {e}") from e

        encoding = (
            serialization.Encoding.PEM
            if path.suffix.lower() in PEM_SUFFIXES
            else serialization.Encoding.DER
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(credential.certificate.public_bytes(encoding))
        except OSError as e:
            self._logger.error("export_failed", path=str(path), error=str(e))
            raise ExportError(f"Cannot write {path}: {e}") from e

        self._logger.info(
            "credential_exported",
            path=str(path),
            thumbprint=credential.thumbprint,
            encoding=encoding.name,
        )
        return path
