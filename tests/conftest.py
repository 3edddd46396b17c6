"""Pytest fixtures: throwaway TLS material and an in-memory etcd gateway."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest
import requests
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from etcdadmin.cluster_client import EtcdClusterAdapter


def _key():
    return ec.generate_private_key(ec.SECP256R1())


def _name(cn: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def _cert(subject_key, subject: str, issuer_key, issuer: str, ca: bool, days: int = 30):
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(_name(issuer))
        .public_key(subject_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=days))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .sign(issuer_key, hashes.SHA256())
    )


def _write_cert(path: Path, cert) -> str:
    path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    return str(path)


def _write_key(path: Path, key) -> str:
    path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return str(path)


@pytest.fixture
def tls_files(tmp_path: Path) -> Dict[str, str]:
    """CA, client cert signed by it, matching key, plus a stray key."""
    ca_key = _key()
    ca_cert = _cert(ca_key, "etcd-ca", ca_key, "etcd-ca", ca=True)
    client_key = _key()
    client_cert = _cert(client_key, "etcd-admin", ca_key, "etcd-ca", ca=False)

    return {
        "ca": _write_cert(tmp_path / "cacert.pem", ca_cert),
        "cert": _write_cert(tmp_path / "cert.pem", client_cert),
        "key": _write_key(tmp_path / "key.pem", client_key),
        "other_key": _write_key(tmp_path / "other-key.pem", _key()),
        "dir": str(tmp_path),
    }


def _response(status_code: int, body) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = json.dumps(body).encode() if body is not None else b"not json"
    resp.encoding = "utf-8"
    return resp


class FakeEtcdGateway:
    """
    In-memory stand-in for a cluster's JSON gateway, used as the adapter's
    requests.Session. Records every call and the members it defragmented.
    """

    def __init__(self, endpoints: List[str], leader_index: int = 0, revision: int = 42):
        self.members: Dict[str, int] = {ep: 0x1000 + i for i, ep in enumerate(endpoints)}
        self.leader_id = self.members[endpoints[leader_index]]
        self.revision = revision
        self.down: Set[str] = set()
        self.failing_defrag: Set[str] = set()
        self.compaction_error: Optional[Tuple[int, dict]] = None
        self.status_body: Dict[str, dict] = {}
        self.defragmented: List[str] = []
        self.compacted_to: List[int] = []
        self.calls: List[Tuple[str, str, dict, Optional[float]]] = []
        self.cert = None
        self.verify = True
        self.closed = False

    def post(self, url: str, json=None, timeout=None):
        base, path = url.split("/v3", 1)
        endpoint = base.split("://", 1)[1]
        path = "/v3" + path
        self.calls.append((endpoint, path, json, timeout))

        if endpoint in self.down:
            raise requests.ConnectionError(f"connection refused: {endpoint}")

        member_id = self.members[endpoint]
        header = {
            "cluster_id": "14841639068965178418",
            "member_id": str(member_id),
            "revision": str(self.revision),
            "raft_term": "3",
        }

        if path == "/v3/maintenance/status":
            if endpoint in self.status_body:
                return _response(200, self.status_body[endpoint])
            return _response(200, {
                "header": header,
                "version": "3.5.12",
                "dbSize": "24576",
                "leader": str(self.leader_id),
                "raftIndex": "117",
                "raftTerm": "3",
                "raftAppliedIndex": "117",
                "dbSizeInUse": "16384",
            })
        if path == "/v3/kv/compaction":
            if self.compaction_error is not None:
                return _response(*self.compaction_error)
            self.compacted_to.append(json["revision"])
            return _response(200, {"header": header})
        if path == "/v3/maintenance/defragment":
            if endpoint in self.failing_defrag:
                return _response(500, {"error": "etcdserver: request timed out", "code": 14,
                                       "message": "etcdserver: request timed out"})
            self.defragmented.append(endpoint)
            return _response(200, {"header": header})
        return _response(404, None)

    def calls_to(self, path: str) -> List[Tuple[str, str, dict, Optional[float]]]:
        return [c for c in self.calls if c[1] == path]

    def close(self):
        self.closed = True


ENDPOINTS = ["10.0.0.1:2379", "10.0.0.2:2379", "10.0.0.3:2379"]


@pytest.fixture
def endpoints() -> List[str]:
    return list(ENDPOINTS)


@pytest.fixture
def gateway(endpoints: List[str]) -> FakeEtcdGateway:
    """Healthy three-member cluster; the second member leads."""
    return FakeEtcdGateway(endpoints, leader_index=1)


@pytest.fixture
def adapter(gateway: FakeEtcdGateway, endpoints: List[str]) -> EtcdClusterAdapter:
    return EtcdClusterAdapter(gateway, endpoints)
