"""RDS API gateway.

Wraps the boto3 RDS client with the calls the clone lifecycle needs. Every
failed call is logged and raised as ProviderError; nothing is retried here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..errors import DBInstanceNotFoundError, ProviderError, SnapshotNotFoundError
from ..models.resource import DBInstance, DBSnapshot, RDSResource
from .client import create_boto_client

INSTANCE_NOT_FOUND_CODES = ("DBInstanceNotFound", "DBInstanceNotFoundFault")
SNAPSHOT_NOT_FOUND_CODES = ("DBSnapshotNotFound", "DBSnapshotNotFoundFault")


class RDSGateway:
    """Resource provider gateway over the RDS API.

    Attributes:
        client: boto3 RDS client
        region: AWS region of the client
        account_id: AWS account owning the resources (used for ARNs)
        partition: AWS partition (default "aws")
    """

    def __init__(
        self,
        client: Any,
        region: str,
        account_id: str,
        partition: str = "aws",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.client = client
        self.region = region
        self.account_id = account_id
        self.partition = partition
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def create(
        cls,
        account_id: str,
        region: Optional[str] = None,
        profile_name: Optional[str] = None,
        partition: str = "aws",
        logger: Optional[logging.Logger] = None,
    ) -> "RDSGateway":
        """Create a gateway with a fresh boto3 RDS client.

        The partition must match the caller identity (aws-cn, aws-us-gov, ...)
        for tag lookups by ARN to work outside the commercial regions.
        """
        client = create_boto_client(service_name="rds", region_name=region, profile_name=profile_name)
        return cls(
            client=client,
            region=client.meta.region_name,
            account_id=account_id,
            partition=partition,
            logger=logger,
        )

    @property
    def arn_prefix(self) -> str:
        return f"arn:{self.partition}:rds:{self.region}:{self.account_id}:"

    def arn(self, resource: RDSResource) -> str:
        """Build the ARN used for tagging calls.

        Raises:
            TypeError: If resource is neither a DBInstance nor a DBSnapshot
        """
        if isinstance(resource, DBInstance):
            arn = f"{self.arn_prefix}db:{resource.identifier}"
        elif isinstance(resource, DBSnapshot):
            arn = f"{self.arn_prefix}snapshot:{resource.identifier}"
        else:
            raise TypeError(f"Cannot build an ARN for {type(resource).__name__}")

        self.logger.debug(f"ARN: {arn}")
        return arn

    # Instances

    def describe_db_instances(self) -> List[DBInstance]:
        """Describe every DB instance in the region."""
        return [DBInstance.from_api(item) for item in self._paginate("describe_db_instances", "DBInstances")]

    def describe_db_instance(self, identifier: str) -> DBInstance:
        """Describe a single DB instance.

        Raises:
            DBInstanceNotFoundError: If no instance has this identifier
            ProviderError: If the API call fails for any other reason
        """
        try:
            items = self._paginate("describe_db_instances", "DBInstances", DBInstanceIdentifier=identifier)
        except ProviderError as e:
            if e.code in INSTANCE_NOT_FOUND_CODES:
                raise DBInstanceNotFoundError(identifier) from e
            raise

        if not items:
            self.logger.error(f"DB instance '{identifier}' is not found")
            raise DBInstanceNotFoundError(identifier)

        return DBInstance.from_api(items[-1])

    def restore_db_instance_from_snapshot(
        self,
        identifier: str,
        snapshot: DBSnapshot,
        source: DBInstance,
        instance_class: str,
        multi_az: bool,
        tags: List[Dict[str, str]],
    ) -> DBInstance:
        """Restore a new instance from a snapshot.

        Subnet group and storage type are copied from the source instance.
        Tags must be passed here so the clone is never untagged.
        """
        params: Dict[str, Any] = {
            "DBInstanceIdentifier": identifier,
            "DBSnapshotIdentifier": snapshot.identifier,
            "DBInstanceClass": instance_class,
            "MultiAZ": multi_az,
            "Tags": tags,
        }
        if source.subnet_group:
            params["DBSubnetGroupName"] = source.subnet_group
        if source.storage_type:
            params["StorageType"] = source.storage_type

        response = self._call("restore_db_instance_from_db_snapshot", **params)
        return DBInstance.from_api(response["DBInstance"])

    def modify_db_instance(
        self,
        identifier: str,
        parameter_group: Optional[str],
        security_group_ids: List[str],
    ) -> DBInstance:
        """Apply a parameter group and security groups immediately."""
        params: Dict[str, Any] = {
            "DBInstanceIdentifier": identifier,
            "VpcSecurityGroupIds": security_group_ids,
            "ApplyImmediately": True,
        }
        if parameter_group:
            params["DBParameterGroupName"] = parameter_group

        response = self._call("modify_db_instance", **params)
        return DBInstance.from_api(response["DBInstance"])

    def reboot_db_instance(self, identifier: str) -> DBInstance:
        response = self._call("reboot_db_instance", DBInstanceIdentifier=identifier)
        return DBInstance.from_api(response["DBInstance"])

    def delete_db_instance(self, identifier: str) -> DBInstance:
        """Delete an instance without taking a final snapshot."""
        response = self._call(
            "delete_db_instance",
            DBInstanceIdentifier=identifier,
            SkipFinalSnapshot=True,
        )
        return DBInstance.from_api(response["DBInstance"])

    # Snapshots

    def describe_db_snapshots(self, instance_identifier: Optional[str] = None) -> List[DBSnapshot]:
        """Describe snapshots, optionally only those of one instance.

        Results keep the order the API returned them in.
        """
        params = {}
        if instance_identifier:
            params["DBInstanceIdentifier"] = instance_identifier
        return [DBSnapshot.from_api(item) for item in self._paginate("describe_db_snapshots", "DBSnapshots", **params)]

    def describe_db_snapshot(self, identifier: str) -> DBSnapshot:
        """Describe a single snapshot.

        Raises:
            SnapshotNotFoundError: If no snapshot has this identifier
            ProviderError: If the API call fails for any other reason
        """
        try:
            items = self._paginate("describe_db_snapshots", "DBSnapshots", DBSnapshotIdentifier=identifier)
        except ProviderError as e:
            if e.code in SNAPSHOT_NOT_FOUND_CODES:
                raise SnapshotNotFoundError(identifier) from e
            raise

        if not items:
            self.logger.error(f"DB snapshot '{identifier}' is not found")
            raise SnapshotNotFoundError(identifier)

        return DBSnapshot.from_api(items[-1])

    def create_db_snapshot(
        self,
        instance_identifier: str,
        snapshot_identifier: str,
        tags: List[Dict[str, str]],
    ) -> DBSnapshot:
        response = self._call(
            "create_db_snapshot",
            DBInstanceIdentifier=instance_identifier,
            DBSnapshotIdentifier=snapshot_identifier,
            Tags=tags,
        )
        return DBSnapshot.from_api(response["DBSnapshot"])

    def delete_db_snapshot(self, identifier: str) -> DBSnapshot:
        response = self._call("delete_db_snapshot", DBSnapshotIdentifier=identifier)
        return DBSnapshot.from_api(response["DBSnapshot"])

    # Tags

    def list_tags(self, resource: RDSResource) -> List[Dict[str, str]]:
        """Return the tag list of an instance or snapshot."""
        response = self._call("list_tags_for_resource", ResourceName=self.arn(resource))
        return response.get("TagList", [])

    # Internals

    def _call(self, method: str, **params: Any) -> Dict[str, Any]:
        """Invoke a client method, converting botocore errors to ProviderError."""
        try:
            return getattr(self.client, method)(**params)
        except ClientError as e:
            raise self._provider_error(method, e) from e
        except BotoCoreError as e:
            self.logger.error(f"{method} failed: {e}")
            raise ProviderError(method, "Unknown", str(e)) from e

    def _paginate(self, method: str, key: str, **params: Any) -> List[Dict[str, Any]]:
        """Collect every item of a paginated describe call."""
        items: List[Dict[str, Any]] = []
        try:
            paginator = self.client.get_paginator(method)
            for page in paginator.paginate(**params):
                items.extend(page.get(key, []))
        except ClientError as e:
            raise self._provider_error(method, e) from e
        except BotoCoreError as e:
            self.logger.error(f"{method} failed: {e}")
            raise ProviderError(method, "Unknown", str(e)) from e
        return items

    def _provider_error(self, method: str, error: ClientError) -> ProviderError:
        error_code = error.response.get("Error", {}).get("Code", "Unknown")
        error_message = error.response.get("Error", {}).get("Message", str(error))
        operation = error.operation_name or method
        self.logger.error(f"{operation} failed: {error_code} - {error_message}")
        return ProviderError(operation, error_code, error_message)
