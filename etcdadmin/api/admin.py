"""
Administrative API

Endpoints:
- GET  /api/status:  status of every configured member
- POST /api/compact: compact the keyspace up to the current revision
- POST /api/defrag:  defragment every member in order

Failures raised by the adapter are rendered to JSON by the handlers
registered in etcdadmin.service.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query, Request

from etcdadmin.cluster_client import EtcdClusterAdapter
from etcdadmin.config import AdminConfig
from etcdadmin.models import EndpointStatusOut, ErrorOut, MessageOut, VerboseEndpointStatusOut

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["admin"],
    responses={500: {"model": ErrorOut, "description": "Cluster call failed"}},
)


def get_adapter(request: Request) -> EtcdClusterAdapter:
    return request.app.state.adapter


def get_config(request: Request) -> AdminConfig:
    return request.app.state.config


@router.get("/status")
def get_endpoint_status(
    verbose: bool = Query(default=False, description="Include member ID and raft position"),
    adapter: EtcdClusterAdapter = Depends(get_adapter),
) -> List[Dict[str, Any]]:
    """
    Status of every configured member, in configured order.
    Any failing member fails the whole request.
    """
    statuses = adapter.list_endpoint_status()
    out_cls = VerboseEndpointStatusOut if verbose else EndpointStatusOut
    return [out_cls.from_status(s).model_dump(by_alias=True) for s in statuses]


@router.post("/compact", response_model=MessageOut)
def compact_etcd(
    physical: bool = Query(default=False, description="Wait until compaction is physically applied"),
    adapter: EtcdClusterAdapter = Depends(get_adapter),
    config: AdminConfig = Depends(get_config),
):
    result = adapter.compact(revision_source=config.revision_source, physical=physical)
    logger.info(f"Compaction via {result.endpoint} at revision {result.revision}")
    return MessageOut(message="Compaction successful")


@router.post("/defrag", response_model=MessageOut)
def defrag_endpoints(adapter: EtcdClusterAdapter = Depends(get_adapter)):
    adapter.defragment()
    return MessageOut(message="Defragmentation successful")
