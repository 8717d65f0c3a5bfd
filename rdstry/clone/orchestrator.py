"""Clone lifecycle orchestrator.

Sequences the RDS calls for one run:

    describe source -> pick snapshot -> restore (tagged) -> wait -> modify
    -> wait [-> reboot -> wait] -> execute queries -> delete clone
    [-> delete snapshot taken for this run]

Also provides the maintenance operations that find and delete clones and
snapshots left behind by earlier runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..aws.gateway import RDSGateway
from ..errors import ProviderError, SnapshotNotFoundError, WaitFailedError
from ..models.query import Query, QueryBatchResult
from ..models.resource import DBInstance, DBSnapshot, RDSResource, resource_kind
from ..query.executor import QueryExecutor
from ..utils.naming import display_name
from .tags import TagRegistry
from .waiter import StatusWaiter

DEFAULT_INSTANCE_CLASS = "db.t3.medium"


@dataclass
class RunOptions:
    """Options for one clone lifecycle run.

    Attributes:
        source_identifier: Identifier of the instance to clone
        queries: Queries to run, in order
        instance_class: Instance class for the clone
        multi_az: Create the clone as Multi-AZ
        fresh_snapshot: Take a new snapshot of the source instead of using the latest one
    """

    source_identifier: str
    queries: Sequence[Query]
    instance_class: str = DEFAULT_INSTANCE_CLASS
    multi_az: bool = False
    fresh_snapshot: bool = False


@dataclass
class RunReport:
    """Summary of a completed run."""

    source_identifier: str
    clone_identifier: str
    snapshot_identifier: str
    snapshot_deleted: bool
    batch: QueryBatchResult


class CloneLifecycle:
    """Orchestrates restore, query and teardown of a clone instance.

    Attributes:
        gateway: RDS gateway
        tag_registry: Ownership tags and discovery
        waiter: Status waiter
        executor: Query executor
    """

    def __init__(
        self,
        gateway: RDSGateway,
        tag_registry: TagRegistry,
        waiter: StatusWaiter,
        executor: QueryExecutor,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.gateway = gateway
        self.tag_registry = tag_registry
        self.waiter = waiter
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)

    def run(self, options: RunOptions) -> RunReport:
        """Clone the source instance, run the queries and delete the clone.

        If a wait fails the clone is left in place and WaitFailedError is
        raised; ``rdstry rm`` removes it later. Once the clone is available
        it is deleted whether or not the queries succeed, and a query error
        is raised after teardown.

        Raises:
            DBInstanceNotFoundError: If the source instance does not exist
            SnapshotNotFoundError: If the source has no available snapshot
            ProviderError: If any RDS call fails
            WaitFailedError: If a resource does not become available
            DriverNotFoundError: If the clone's engine has no SQL driver
            QueryError: If the connection or a query fails; ``error.batch``
                holds the results of the queries that completed
        """
        source = self.gateway.describe_db_instance(options.source_identifier)
        self.logger.info(f"Source DB Instance: {source.identifier} ({source.engine}, {source.status})")

        if options.fresh_snapshot:
            snapshot = self.create_snapshot(source)
        else:
            snapshot = self.latest_snapshot(source.identifier)
        self.logger.info(f"Using DB Snapshot: {snapshot.identifier}")

        clone = self.restore(source, snapshot, options)
        self._wait_available(clone)

        clone = self.apply_source_settings(clone, source)
        clone = self._wait_available(clone)

        if clone.has_pending_changes():
            self.logger.info(f"Pending parameter changes on {clone.identifier}, rebooting")
            self.gateway.reboot_db_instance(clone.identifier)
            clone = self._wait_available(clone)

        try:
            batch = self._execute(clone, options.queries)
        finally:
            self.teardown(clone, snapshot if options.fresh_snapshot else None)

        if batch.error is not None:
            # Completed queries stay reachable through the error
            batch.error.batch = batch
            raise batch.error

        return RunReport(
            source_identifier=source.identifier,
            clone_identifier=clone.identifier,
            snapshot_identifier=snapshot.identifier,
            snapshot_deleted=options.fresh_snapshot,
            batch=batch,
        )

    def latest_snapshot(self, instance_identifier: str) -> DBSnapshot:
        """Return the last available snapshot of an instance in API order.

        The RDS API is relied on to list snapshots oldest first; creation
        times are not compared.

        Raises:
            SnapshotNotFoundError: If the instance has no available snapshot
        """
        available = []
        for snapshot in self.gateway.describe_db_snapshots(instance_identifier):
            if not snapshot.is_available:
                self.logger.debug(f"DB Snapshot {snapshot.identifier} Status: {snapshot.status}")
                continue
            available.append(snapshot)

        if not available:
            self.logger.error(f"No available DB snapshot for {instance_identifier}")
            raise SnapshotNotFoundError(instance_identifier)

        return available[-1]

    def create_snapshot(self, source: DBInstance) -> DBSnapshot:
        """Take a tagged manual snapshot of the source and wait for it."""
        snapshot = self.gateway.create_db_snapshot(
            instance_identifier=source.identifier,
            snapshot_identifier=display_name(source.identifier),
            tags=self.tag_registry.tags(),
        )
        self.logger.info(f"Creating DB Snapshot: {snapshot.identifier}")
        return self._wait_available(snapshot)

    def restore(self, source: DBInstance, snapshot: DBSnapshot, options: RunOptions) -> DBInstance:
        """Restore the clone from a snapshot with the ownership tags attached."""
        clone = self.gateway.restore_db_instance_from_snapshot(
            identifier=display_name(source.identifier),
            snapshot=snapshot,
            source=source,
            instance_class=options.instance_class,
            multi_az=options.multi_az,
            tags=self.tag_registry.tags(),
        )
        self.logger.info(f"Restoring DB Instance: {clone.identifier} ({options.instance_class})")
        return clone

    def apply_source_settings(self, clone: DBInstance, source: DBInstance) -> DBInstance:
        """Give the clone the source's parameter group and security groups."""
        parameter_group = source.parameter_groups[0].name if source.parameter_groups else None
        modified = self.gateway.modify_db_instance(
            identifier=clone.identifier,
            parameter_group=parameter_group,
            security_group_ids=source.security_group_ids,
        )
        self.logger.info(f"Modifying DB Instance: {modified.identifier}")
        return modified

    def teardown(self, clone: DBInstance, snapshot: Optional[DBSnapshot] = None) -> None:
        """Delete the clone without a final snapshot, then the run's own snapshot."""
        self.gateway.delete_db_instance(clone.identifier)
        self.logger.info(f"Deleted DB Instance: {clone.identifier}")

        if snapshot is not None:
            self.gateway.delete_db_snapshot(snapshot.identifier)
            self.logger.info(f"Deleted DB Snapshot: {snapshot.identifier}")

    # Maintenance

    def discover_owned_instances(self) -> List[DBInstance]:
        """Return DB instances carrying the ownership tags."""
        return self.tag_registry.filter_owned(self.gateway.describe_db_instances())

    def discover_owned_snapshots(self) -> List[DBSnapshot]:
        """Return DB snapshots carrying the ownership tags."""
        return self.tag_registry.filter_owned(self.gateway.describe_db_snapshots())

    def delete_all(self, resources: Sequence[RDSResource]) -> List[str]:
        """Delete a list of instances or a list of snapshots, in order.

        The first failed deletion stops the batch.

        Args:
            resources: All DBInstance or all DBSnapshot

        Returns:
            Identifiers deleted

        Raises:
            TypeError: If the list mixes kinds or holds anything else
            ProviderError: If a deletion fails
        """
        kinds = {resource_kind(resource) for resource in resources}
        if len(kinds) > 1:
            raise TypeError("delete_all expects only DB instances or only DB snapshots")

        deleted: List[str] = []
        for index, resource in enumerate(resources, start=1):
            if isinstance(resource, DBInstance):
                result: RDSResource = self.gateway.delete_db_instance(resource.identifier)
            else:
                result = self.gateway.delete_db_snapshot(resource.identifier)

            self.logger.info(f"[{index}] deleted {resource_kind(resource)}: {result.identifier}")
            deleted.append(result.identifier)

        return deleted

    # Internals

    def _wait_available(self, resource: RDSResource) -> RDSResource:
        """Wait for a resource and return its refreshed description.

        Raises:
            WaitFailedError: If the wait times out or describing fails
        """
        result = self.waiter.wait_for(resource)
        if not result.ok:
            self.logger.error(
                f"{resource_kind(resource)} {resource.identifier} is not available ({result.status.value})"
            )
            raise WaitFailedError(resource.identifier, result)

        if isinstance(resource, DBInstance):
            return self.gateway.describe_db_instance(resource.identifier)
        return self.gateway.describe_db_snapshot(resource.identifier)

    def _execute(self, clone: DBInstance, queries: Sequence[Query]) -> QueryBatchResult:
        if clone.endpoint is None:
            raise ProviderError("DescribeDBInstances", "MissingEndpoint", f"{clone.identifier} has no endpoint")

        batch = self.executor.execute(clone.engine, clone.endpoint, queries)
        for index, result in enumerate(batch.results, start=1):
            self.logger.info(f"[{index}] {result.name}: {result.elapsed.total_seconds():.3f}s")
        return batch
