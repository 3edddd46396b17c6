"""
etcd-admin — administrative facade over an etcd v3 cluster

Small HTTP control plane that drives the cluster's maintenance API over
mutual TLS:
- Per-member status (leader, version, database size)
- Keyspace compaction up to the current revision
- Per-member storage defragmentation
"""

__version__ = "0.1.0"
