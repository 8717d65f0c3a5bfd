"""RDS instance and snapshot models.

Thin views over ``describe_db_instances`` / ``describe_db_snapshots`` items
that keep the fields the clone lifecycle needs plus the raw API dictionary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

AVAILABLE = "available"


@dataclass(frozen=True)
class Endpoint:
    """Network endpoint of a DB instance."""

    address: str
    port: int


@dataclass
class ParameterGroupStatus:
    """DB parameter group attached to an instance."""

    name: str
    apply_status: str


@dataclass
class SecurityGroupStatus:
    """VPC security group attached to an instance."""

    group_id: str
    status: str


@dataclass
class DBInstance:
    """An RDS DB instance.

    Attributes:
        identifier: DBInstanceIdentifier
        status: DBInstanceStatus (creating, modifying, available, deleting, ...)
        engine: Engine name (e.g. "mysql", "postgres", "oracle-se2")
        endpoint: Network endpoint, absent while the instance is being created
        instance_class: DBInstanceClass
        multi_az: Whether the instance is Multi-AZ
        subnet_group: DBSubnetGroupName
        storage_type: StorageType
        parameter_groups: Attached DB parameter groups with apply status
        security_groups: Attached VPC security groups with status
        raw: Item as returned by the API
    """

    identifier: str
    status: str
    engine: str = ""
    endpoint: Optional[Endpoint] = None
    instance_class: Optional[str] = None
    multi_az: bool = False
    subnet_group: Optional[str] = None
    storage_type: Optional[str] = None
    parameter_groups: List[ParameterGroupStatus] = field(default_factory=list)
    security_groups: List[SecurityGroupStatus] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DBInstance":
        """Build from a ``DBInstances`` item."""
        endpoint = None
        if data.get("Endpoint"):
            endpoint = Endpoint(address=data["Endpoint"]["Address"], port=int(data["Endpoint"]["Port"]))

        return cls(
            identifier=data["DBInstanceIdentifier"],
            status=data.get("DBInstanceStatus", "unknown"),
            engine=data.get("Engine", ""),
            endpoint=endpoint,
            instance_class=data.get("DBInstanceClass"),
            multi_az=data.get("MultiAZ", False),
            subnet_group=(data.get("DBSubnetGroup") or {}).get("DBSubnetGroupName"),
            storage_type=data.get("StorageType"),
            parameter_groups=[
                ParameterGroupStatus(name=g["DBParameterGroupName"], apply_status=g.get("ParameterApplyStatus", ""))
                for g in data.get("DBParameterGroups", [])
            ],
            security_groups=[
                SecurityGroupStatus(group_id=g["VpcSecurityGroupId"], status=g.get("Status", ""))
                for g in data.get("VpcSecurityGroups", [])
            ],
            raw=data,
        )

    @property
    def is_available(self) -> bool:
        return self.status == AVAILABLE

    @property
    def security_group_ids(self) -> List[str]:
        return [g.group_id for g in self.security_groups]

    def has_pending_changes(self) -> bool:
        """Return True while parameter or security group changes are not applied.

        A parameter group that is not ``in-sync`` usually needs a reboot.
        """
        if any(g.apply_status != "in-sync" for g in self.parameter_groups):
            return True
        return any(g.status != "active" for g in self.security_groups)


@dataclass
class DBSnapshot:
    """An RDS DB snapshot."""

    identifier: str
    instance_identifier: str
    status: str
    created_at: Optional[datetime] = None
    snapshot_type: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DBSnapshot":
        """Build from a ``DBSnapshots`` item."""
        return cls(
            identifier=data["DBSnapshotIdentifier"],
            instance_identifier=data.get("DBInstanceIdentifier", ""),
            status=data.get("Status", "unknown"),
            created_at=data.get("SnapshotCreateTime"),
            snapshot_type=data.get("SnapshotType"),
            raw=data,
        )

    @property
    def is_available(self) -> bool:
        return self.status == AVAILABLE


RDSResource = Union[DBInstance, DBSnapshot]


def resource_kind(resource: RDSResource) -> str:
    """Return "DB Instance" or "DB Snapshot".

    Raises:
        TypeError: If resource is neither a DBInstance nor a DBSnapshot
    """
    if isinstance(resource, DBInstance):
        return "DB Instance"
    if isinstance(resource, DBSnapshot):
        return "DB Snapshot"
    raise TypeError(f"Expected DBInstance or DBSnapshot, got {type(resource).__name__}")
