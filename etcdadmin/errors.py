"""
Error taxonomy for etcd-admin.

Startup errors (credentials, connection) are fatal; remote errors are raised
per request and rendered as JSON by the HTTP layer.
"""

from typing import List, Optional, Sequence, Tuple


class AdminError(Exception):
    """Base class for every error raised by etcd-admin."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CredentialLoadError(AdminError):
    """TLS material could not be loaded; the service must not start."""

    kind = "credentials"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class CertificateKeyError(CredentialLoadError):
    """Client certificate or key unreadable, malformed or mismatched."""

    kind = "certificate_key"


class CABundleError(CredentialLoadError):
    """CA bundle unreadable, malformed or empty."""

    kind = "ca_bundle"


class ClusterConnectionError(AdminError):
    """No configured endpoint answered within the dial timeout."""

    def __init__(self, message: str, failures: Sequence[Tuple[str, str]] = ()):
        super().__init__(message)
        self.failures = list(failures)


class RemoteError(AdminError):
    """A single call against the cluster failed."""

    def __init__(self, message: str, endpoint: Optional[str] = None):
        super().__init__(message)
        self.endpoint = endpoint

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.endpoint is not None:
            body["endpoint"] = self.endpoint
        return body


class PartialCompletionError(RemoteError):
    """
    Defragmentation stopped part way through the endpoint list.

    Endpoints in `completed` stay defragmented; nothing is rolled back.
    """

    def __init__(self, message: str, endpoint: str, completed: Sequence[str]):
        super().__init__(message, endpoint=endpoint)
        self.completed: List[str] = list(completed)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["defragmented"] = list(self.completed)
        return body
