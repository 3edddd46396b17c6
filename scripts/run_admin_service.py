"""
etcd-admin Service Launcher

Starts the administrative HTTP facade from the etcdadmin/ package without
installing it.

This service provides:
- Per-member status (leader, version, database size)
- Keyspace compaction up to the current revision
- Sequential per-member defragmentation

Usage:
    python scripts/run_admin_service.py --etcd-endpoints 10.0.0.1:2379 --listen-port 8080

Environment Variables:
    LISTEN_PORT, LISTEN_HOST, ETCD_ENDPOINTS, CA_CERT, CERT, KEY, DEBUG,
    DIAL_TIMEOUT, REQUEST_TIMEOUT, REVISION_SOURCE, LOG_FILE
    (each read only when the matching flag is absent)
"""
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from etcdadmin.service import main


if __name__ == "__main__":
    main()
