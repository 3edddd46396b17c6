"""
TLS Credential Loader

Loads the client certificate, private key and CA bundle used for mutual TLS
against the etcd cluster. Everything is validated once at startup; a failure
here is fatal and the service never starts serving.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Tuple

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from etcdadmin.errors import CABundleError, CertificateKeyError, CredentialLoadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TLSCredentials:
    cert_file: str
    key_file: str
    ca_file: str
    subject: str
    not_valid_after: datetime
    ca_count: int

    @property
    def requests_cert(self) -> Tuple[str, str]:
        """Client certificate pair in the form `requests` expects."""
        return (self.cert_file, self.key_file)

    @property
    def requests_verify(self) -> str:
        return self.ca_file


def _read_file(path: str, error_cls: type[CredentialLoadError], label: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise error_cls(f"Cannot read {label} '{path}': {e}", path=path) from e


def _public_der(public_key) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def load_credentials(cert_file: str, key_file: str, ca_file: str) -> TLSCredentials:
    """
    Load and validate a mutual-TLS credential triple.

    Args:
        cert_file: PEM client certificate
        key_file: PEM private key (unencrypted) matching the certificate
        ca_file: PEM bundle with at least one CA certificate

    Raises:
        CertificateKeyError: certificate/key unreadable, malformed or mismatched
        CABundleError: CA bundle unreadable, malformed or empty
    """
    cert_pem = _read_file(cert_file, CertificateKeyError, "certificate")
    key_pem = _read_file(key_file, CertificateKeyError, "private key")

    try:
        cert = x509.load_pem_x509_certificate(cert_pem)
    except ValueError as e:
        raise CertificateKeyError(f"Malformed certificate '{cert_file}': {e}", path=cert_file) from e

    try:
        key = serialization.load_pem_private_key(key_pem, password=None)
    except (ValueError, TypeError) as e:
        # TypeError: key is encrypted, no password supported
        raise CertificateKeyError(f"Malformed private key '{key_file}': {e}", path=key_file) from e

    if _public_der(cert.public_key()) != _public_der(key.public_key()):
        raise CertificateKeyError(
            f"Private key '{key_file}' does not match certificate '{cert_file}'",
            path=key_file,
        )

    ca_pem = _read_file(ca_file, CABundleError, "CA bundle")
    # raises ValueError when the bundle holds no certificate at all
    try:
        ca_certs = x509.load_pem_x509_certificates(ca_pem)
    except ValueError as e:
        raise CABundleError(f"No usable CA certificates in '{ca_file}': {e}", path=ca_file) from e

    expires = cert.not_valid_after_utc
    subject = cert.subject.rfc4514_string()
    if expires < datetime.now(timezone.utc):
        logger.warning(f"Client certificate {subject} expired at {expires.isoformat()}")

    logger.info(
        f"Loaded TLS credentials: subject={subject} expires={expires.isoformat()} "
        f"ca_certs={len(ca_certs)}"
    )
    return TLSCredentials(
        cert_file=str(cert_file),
        key_file=str(key_file),
        ca_file=str(ca_file),
        subject=subject,
        not_valid_after=expires,
        ca_count=len(ca_certs),
    )
