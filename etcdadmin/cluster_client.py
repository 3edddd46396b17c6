"""
Cluster Client Adapter

Drives an etcd v3 cluster's maintenance API through the JSON gateway that
every member serves on its client URL. One long-lived `requests.Session`
carries the mutual-TLS material for the whole process lifetime.

Operations:
- endpoint_status / list_endpoint_status: per-member status, fail fast
- compact: one status read against the revision source, one compaction
- defragment: sequential per-member defragmentation, stop on first failure
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from etcdadmin.errors import ClusterConnectionError, PartialCompletionError, RemoteError
from etcdadmin.tls import TLSCredentials

logger = logging.getLogger(__name__)

DEFAULT_DIAL_TIMEOUT = 5.0

STATUS_PATH = "/v3/maintenance/status"
COMPACTION_PATH = "/v3/kv/compaction"
DEFRAGMENT_PATH = "/v3/maintenance/defragment"


@dataclass(frozen=True)
class EndpointStatus:
    """Snapshot of one member, recomputed on every request."""
    endpoint: str
    member_id: int
    leader_id: int
    version: str
    db_size: int
    db_size_in_use: int
    revision: int
    raft_term: int
    raft_index: int

    @property
    def leader(self) -> bool:
        return self.member_id != 0 and self.member_id == self.leader_id


@dataclass(frozen=True)
class CompactionResult:
    endpoint: str
    revision: int
    physical: bool


def endpoint_url(endpoint: str) -> str:
    """Base URL for an endpoint; bare host:port is addressed over https."""
    endpoint = endpoint.strip().rstrip("/")
    if "://" in endpoint:
        return endpoint
    return f"https://{endpoint}"


def _as_int(value: Any) -> int:
    # The gateway encodes 64-bit integers as JSON strings
    if value is None or value == "":
        return 0
    return int(value)


def parse_status(endpoint: str, payload: Dict[str, Any]) -> EndpointStatus:
    header = payload.get("header") or {}
    if not isinstance(header, dict):
        raise RemoteError(
            f"Malformed status response: header is {type(header).__name__}, not an object",
            endpoint=endpoint,
        )
    try:
        return EndpointStatus(
            endpoint=endpoint,
            member_id=_as_int(header.get("member_id")),
            leader_id=_as_int(payload.get("leader")),
            version=str(payload.get("version", "")),
            db_size=_as_int(payload.get("dbSize")),
            db_size_in_use=_as_int(payload.get("dbSizeInUse")),
            revision=_as_int(header.get("revision")),
            raft_term=_as_int(payload.get("raftTerm")),
            raft_index=_as_int(payload.get("raftIndex")),
        )
    except (TypeError, ValueError) as e:
        raise RemoteError(f"Malformed status response: {e}", endpoint=endpoint) from e


class EtcdClusterAdapter:
    """
    Administrative client bound to a fixed set of etcd endpoints.

    Usage:
        creds = load_credentials("cert.pem", "key.pem", "cacert.pem")
        adapter = EtcdClusterAdapter.connect(creds, ["10.0.0.1:2379", "10.0.0.2:2379"])

        statuses = adapter.list_endpoint_status()
        adapter.compact()
        adapter.defragment()

    The endpoint tuple never changes after construction. There is no
    reconnection; callers who want one build a new adapter with connect().
    """

    def __init__(
        self,
        session: requests.Session,
        endpoints: Sequence[str],
        request_timeout: Optional[float] = None,
    ):
        cleaned = tuple(ep.strip() for ep in endpoints if ep and ep.strip())
        if not cleaned:
            raise ValueError("At least one etcd endpoint is required")
        self._session = session
        self._endpoints: Tuple[str, ...] = cleaned
        self._request_timeout = request_timeout

    @classmethod
    def connect(
        cls,
        credentials: TLSCredentials,
        endpoints: Sequence[str],
        dial_timeout: float = DEFAULT_DIAL_TIMEOUT,
        request_timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> "EtcdClusterAdapter":
        """
        Build an adapter and prove that at least one endpoint answers.

        Endpoints are tried in order with status calls that share one
        dial_timeout deadline. The first answer ends the loop; endpoints
        still waiting when the deadline passes are skipped.

        Raises:
            ValueError: empty endpoint list
            ClusterConnectionError: no endpoint answered
        """
        if session is None:
            session = requests.Session()
        session.cert = credentials.requests_cert
        session.verify = credentials.requests_verify

        adapter = cls(session, endpoints, request_timeout=request_timeout)

        failures: List[Tuple[str, str]] = []
        deadline = time.monotonic() + dial_timeout
        for ep in adapter.endpoints:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                failures.append((ep, "skipped, dial timeout exhausted"))
                continue
            try:
                adapter._post(ep, STATUS_PATH, {}, timeout=remaining)
            except RemoteError as e:
                logger.warning(f"Endpoint {ep} unreachable during connect: {e.message}")
                failures.append((ep, e.message))
                continue
            logger.info(f"Connected to etcd cluster via {ep} ({len(adapter.endpoints)} endpoints)")
            return adapter

        session.close()
        detail = "; ".join(f"{ep}: {msg}" for ep, msg in failures)
        raise ClusterConnectionError(
            f"No etcd endpoint reachable within {dial_timeout}s ({detail})",
            failures=failures,
        )

    @property
    def endpoints(self) -> Tuple[str, ...]:
        return self._endpoints

    def close(self) -> None:
        self._session.close()

    def _post(
        self,
        endpoint: str,
        path: str,
        body: Dict[str, Any],
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """POST to one member's gateway; any failure becomes RemoteError."""
        url = f"{endpoint_url(endpoint)}{path}"
        if timeout is None:
            timeout = self._request_timeout
        logger.debug(f"POST {url} {body}")

        try:
            resp = self._session.post(url, json=body, timeout=timeout)
        except requests.RequestException as e:
            raise RemoteError(f"{type(e).__name__}: {e}", endpoint=endpoint) from e

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if not 200 <= resp.status_code < 300:
            if isinstance(payload, dict):
                error = payload.get("message") or payload.get("error") or resp.text
            else:
                error = resp.text or resp.reason
            raise RemoteError(f"HTTP {resp.status_code}: {error}", endpoint=endpoint)

        if not isinstance(payload, dict):
            raise RemoteError("Unexpected response body from etcd gateway", endpoint=endpoint)
        return payload

    def endpoint_status(self, endpoint: str) -> EndpointStatus:
        return parse_status(endpoint, self._post(endpoint, STATUS_PATH, {}))

    def list_endpoint_status(self) -> List[EndpointStatus]:
        """
        Query every endpoint in configured order.

        Fails fast: the first failing endpoint aborts the whole listing and
        its RemoteError propagates; no partial list is returned.
        """
        statuses = []
        for ep in self._endpoints:
            statuses.append(self.endpoint_status(ep))
        return statuses

    def compact(self, revision_source: Optional[int] = None, physical: bool = False) -> CompactionResult:
        """
        Compact the keyspace up to the current revision.

        The revision is read from a single member, `revision_source` (an index
        into endpoints, default the first). If that member cannot be read no
        compaction is issued and there is no fallback to other members.

        Raises:
            ValueError: revision_source out of range
            RemoteError: status read or compaction failed
        """
        index = 0 if revision_source is None else revision_source
        if not 0 <= index < len(self._endpoints):
            raise ValueError(
                f"revision source {index} out of range for {len(self._endpoints)} endpoints"
            )
        source = self._endpoints[index]

        status = self.endpoint_status(source)
        revision = status.revision
        logger.info(f"Compacting up to revision {revision} (source {source}, physical={physical})")

        self._post(source, COMPACTION_PATH, {"revision": revision, "physical": physical})
        logger.info(f"Compaction to revision {revision} complete")
        return CompactionResult(endpoint=source, revision=revision, physical=physical)

    def defragment(self) -> List[str]:
        """
        Defragment every endpoint in order, stopping on the first failure.

        Members already defragmented stay defragmented and members after the
        failing one are never attempted.

        Returns:
            Endpoints defragmented (all of them on success)

        Raises:
            RemoteError: the first endpoint failed
            PartialCompletionError: a later endpoint failed
        """
        completed: List[str] = []
        for ep in self._endpoints:
            logger.info(f"Defragmenting {ep}")
            try:
                self._post(ep, DEFRAGMENT_PATH, {})
            except RemoteError as e:
                logger.error(f"Defragmentation failed on {ep}: {e.message}")
                if completed:
                    raise PartialCompletionError(e.message, endpoint=ep, completed=completed) from e
                raise
            completed.append(ep)

        logger.info(f"Defragmented {len(completed)} endpoints")
        return completed
