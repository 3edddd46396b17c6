"""Response bodies for the administrative API."""

from typing import List, Optional

from pydantic import BaseModel, Field

from etcdadmin.cluster_client import EndpointStatus


class EndpointStatusOut(BaseModel):
    """One member as reported by GET /api/status"""
    leader: bool
    version: str
    db_size: int = Field(serialization_alias="dbSize")
    db_size_in_use: int = Field(serialization_alias="dbSizeInUse")

    @classmethod
    def from_status(cls, status: EndpointStatus) -> "EndpointStatusOut":
        return cls(
            leader=status.leader,
            version=status.version,
            db_size=status.db_size,
            db_size_in_use=status.db_size_in_use,
        )


class VerboseEndpointStatusOut(EndpointStatusOut):
    """Status entry with member identity and raft position (?verbose=true)"""
    endpoint: str
    member_id: str = Field(serialization_alias="memberId")
    revision: int
    raft_term: int = Field(serialization_alias="raftTerm")
    raft_index: int = Field(serialization_alias="raftIndex")

    @classmethod
    def from_status(cls, status: EndpointStatus) -> "VerboseEndpointStatusOut":
        return cls(
            leader=status.leader,
            version=status.version,
            db_size=status.db_size,
            db_size_in_use=status.db_size_in_use,
            endpoint=status.endpoint,
            # hex, the way etcdctl prints member IDs
            member_id=format(status.member_id, "x"),
            revision=status.revision,
            raft_term=status.raft_term,
            raft_index=status.raft_index,
        )


class MessageOut(BaseModel):
    message: str


class ErrorOut(BaseModel):
    error: str
    endpoint: Optional[str] = None
    defragmented: Optional[List[str]] = None
