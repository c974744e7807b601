"""Cluster registry backed by the AWS EMR API."""

from typing import Dict, List, Optional
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from trino_exporter.errors import (
    ConfigurationError,
    DiscoveryError,
    NoMasterFoundError,
    UnrecognizedTopologyError,
)
from .cache import DEFAULT_MAX_AGE_SECONDS, DEFAULT_TTL_SECONDS, SnapshotCache
from .models import ApiVariant, ClusterEndpoint, DiscoverySnapshot, build_snapshot

logger = logging.getLogger(__name__)

INSTANCE_FLEET = "INSTANCE_FLEET"
INSTANCE_GROUP = "INSTANCE_GROUP"
MASTER_ROLE = "MASTER"


class EMRClusterRegistry:
    """Discovers Trino coordinators running on AWS EMR clusters.

    A discovery pass:
    - Lists clusters in the configured states (default: WAITING), page by page
    - Describes each cluster and keeps the ones with Trino installed
    - Resolves the private IP address of each cluster's master node, for both
      instance-fleet and instance-group clusters

    The resulting snapshot is cached for ``cache_ttl_seconds`` so repeated
    scrapes do not hit the EMR API. Any EMR error aborts the whole pass; no
    partial snapshot is ever returned.

    Required IAM permissions:
        - elasticmapreduce:ListClusters
        - elasticmapreduce:DescribeCluster
        - elasticmapreduce:ListInstances
        - elasticmapreduce:ListInstanceGroups
    """

    def __init__(
        self,
        region_name: Optional[str] = None,
        config: Optional[Dict] = None,
        cache: Optional[SnapshotCache] = None,
    ):
        """Initialize the EMR registry.

        Args:
            region_name: AWS region of the clusters (default credential chain region if None)
            config: Optional configuration dictionary with:
                - profile_name: Named AWS profile from the shared config files
                - cluster_states: Cluster states to list (default: ['WAITING'])
                - applications: Accepted application names (default: ['trino', 'trinodb'])
                - coordinator_port: Coordinator HTTP port (default: 8889)
                - api_variant: Variant assigned to discovered clusters (default: 'authenticated')
                - cache_ttl_seconds: Freshness window of the snapshot (default: 1800)
                - cache_max_age_seconds: Hard eviction ceiling (default: 86400)
                - serve_stale_on_error: Serve the last snapshot when discovery fails (default: False)
            cache: Snapshot cache to use instead of building one from the config
        """
        self.config = config or {}
        self.region_name = region_name

        try:
            session = boto3.Session(
                profile_name=self.config.get("profile_name"), region_name=region_name
            )
            self.emr_client = session.client("emr")
        except BotoCoreError as e:
            raise ConfigurationError(f"Cannot create EMR client: {e}") from e

        self.cluster_states = list(self.config.get("cluster_states", ["WAITING"]))
        self.applications = {
            name.lower() for name in self.config.get("applications", ["trino", "trinodb"])
        }
        self.coordinator_port = int(self.config.get("coordinator_port", 8889))
        self.api_variant = ApiVariant.from_name(
            self.config.get("api_variant", ApiVariant.AUTHENTICATED.value)
        )
        self.serve_stale_on_error = bool(self.config.get("serve_stale_on_error", False))
        self.cache = cache or SnapshotCache(
            ttl_seconds=self.config.get("cache_ttl_seconds", DEFAULT_TTL_SECONDS),
            max_age_seconds=self.config.get(
                "cache_max_age_seconds", DEFAULT_MAX_AGE_SECONDS
            ),
        )

    def provide(self) -> DiscoverySnapshot:
        """Return the current cluster map, running discovery on a cache miss.

        Returns:
            Read-only mapping of cluster name to coordinator endpoint

        Raises:
            DiscoveryError: If the discovery pass fails
        """
        try:
            return self.cache.get_or_load(self._discover)
        except DiscoveryError as e:
            if self.serve_stale_on_error:
                stale = self.cache.get_stale()
                if stale is not None:
                    logger.warning(
                        f"Discovery failed, serving last known clusters "
                        f"({len(stale)} clusters): {e}"
                    )
                    return stale
            raise

    def _discover(self) -> DiscoverySnapshot:
        """Run one full discovery pass against the EMR API."""
        logger.info(f"Discovering Trino clusters in states {self.cluster_states}")

        # EMR does not enforce unique names; the last cluster listed wins
        endpoints: Dict[str, ClusterEndpoint] = {}
        cluster_ids: Dict[str, str] = {}
        for cluster in self._list_target_clusters():
            address = self._get_master_address(cluster)
            name = cluster["Name"]

            if name in endpoints:
                logger.warning(
                    f"Clusters {cluster_ids[name]} and {cluster['Id']} are both named "
                    f"{name!r}, keeping {cluster['Id']}"
                )

            cluster_ids[name] = cluster["Id"]
            endpoints[name] = ClusterEndpoint(
                name=name,
                coordinator_url=f"http://{address}:{self.coordinator_port}",
                api_variant=self.api_variant,
            )

        snapshot = build_snapshot(endpoints.values())
        logger.info(f"Discovered {len(snapshot)} Trino clusters")
        return snapshot

    def _list_target_clusters(self) -> List[Dict]:
        """List clusters in the target states that have Trino installed.

        Returns:
            List of cluster descriptions (the ``Cluster`` part of DescribeCluster)
        """
        clusters = []
        paginator = self.emr_client.get_paginator("list_clusters")

        try:
            for page in paginator.paginate(ClusterStates=self.cluster_states):
                for summary in page.get("Clusters", []):
                    cluster = self._describe_cluster(summary["Id"])

                    if not self._is_trino_installed(cluster):
                        logger.debug(f"Skipping cluster {summary['Id']}: Trino not installed")
                        continue

                    clusters.append(cluster)
        except (ClientError, BotoCoreError) as e:
            raise DiscoveryError(f"Error listing EMR clusters: {e}") from e

        return clusters

    def _describe_cluster(self, cluster_id: str) -> Dict:
        """Get detailed information about a cluster.

        Args:
            cluster_id: EMR cluster ID

        Returns:
            Cluster details dictionary
        """
        response = self._call("describe_cluster", ClusterId=cluster_id)
        return response["Cluster"]

    def _is_trino_installed(self, cluster: Dict) -> bool:
        for application in cluster.get("Applications", []):
            if application.get("Name", "").lower() in self.applications:
                return True
        return False

    def _get_master_address(self, cluster: Dict) -> str:
        """Resolve the private IP address of a cluster's master node.

        Raises:
            UnrecognizedTopologyError: If the instance collection type is unknown
            NoMasterFoundError: If the cluster has no master instance
        """
        topology = cluster.get("InstanceCollectionType")

        if topology == INSTANCE_FLEET:
            return self._get_master_address_for_fleet(cluster["Id"])
        elif topology == INSTANCE_GROUP:
            return self._get_master_address_for_instance_groups(cluster["Id"])

        raise UnrecognizedTopologyError(cluster["Id"], str(topology))

    def _get_master_address_for_fleet(self, cluster_id: str) -> str:
        response = self._call(
            "list_instances", ClusterId=cluster_id, InstanceFleetType=MASTER_ROLE
        )
        instances = response.get("Instances", [])

        if not instances:
            raise NoMasterFoundError(cluster_id)

        return self._private_address(cluster_id, instances[0])

    def _get_master_address_for_instance_groups(self, cluster_id: str) -> str:
        """Return the first instance of the first non-empty master group.

        Groups are tried in listing order.
        """
        response = self._call("list_instance_groups", ClusterId=cluster_id)
        master_groups = [
            group
            for group in response.get("InstanceGroups", [])
            if group.get("InstanceGroupType") == MASTER_ROLE
        ]

        for group in master_groups:
            instances = self._call(
                "list_instances", ClusterId=cluster_id, InstanceGroupId=group["Id"]
            ).get("Instances", [])

            if not instances:
                logger.debug(f"Master group {group['Id']} of {cluster_id} has no instances")
                continue

            return self._private_address(cluster_id, instances[0])

        raise NoMasterFoundError(cluster_id)

    def _private_address(self, cluster_id: str, instance: Dict) -> str:
        address = instance.get("PrivateIpAddress")
        if not address:
            raise NoMasterFoundError(cluster_id)
        return address

    def _call(self, operation: str, **kwargs) -> Dict:
        """Call an EMR operation, turning AWS errors into DiscoveryError."""
        try:
            return getattr(self.emr_client, operation)(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise DiscoveryError(f"EMR {operation} failed: {e}") from e
