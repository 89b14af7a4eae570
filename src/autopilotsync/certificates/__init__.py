"""
autopilotsync Certificates Module

Components:
- store: file-backed trust store keyed by subject
- provisioner: creates the Graph authentication certificate and exports
  its public part
"""

from autopilotsync.certificates.store import CredentialStore, parse_subject, thumbprint
from autopilotsync.certificates.provisioner import CertificateProvisioner, add_months

__all__ = [
    "CredentialStore",
    "CertificateProvisioner",
    "parse_subject",
    "thumbprint",
    "add_months",
]
