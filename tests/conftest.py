"""Pytest configuration and shared fixtures."""

import pytest

from trino_exporter.discovery.models import ApiVariant, ClusterEndpoint


@pytest.fixture
def sample_stats_body():
    """Statistics body as returned by a coordinator.

    Returns:
        Dictionary in the coordinator JSON format
    """
    return {
        "runningQueries": 3,
        "blockedQueries": 0,
        "queuedQueries": 1,
        "activeWorkers": 5,
        "runningDrivers": 2,
        "reservedMemory": 1048576,
        "totalInputRows": 1000,
        "totalInputBytes": 500000,
        "totalCpuTimeSecs": 12.5,
    }


@pytest.fixture
def direct_cluster():
    """Cluster whose coordinator speaks the direct dialect."""
    return ClusterEndpoint(
        name="analytics",
        coordinator_url="http://10.0.0.1:8889",
        api_variant=ApiVariant.DIRECT,
    )


@pytest.fixture
def authenticated_cluster():
    """Cluster whose coordinator requires the login handshake."""
    return ClusterEndpoint(
        name="reporting",
        coordinator_url="http://10.0.0.2:8889",
        api_variant=ApiVariant.AUTHENTICATED,
    )


@pytest.fixture
def trino_cluster_description():
    """DescribeCluster payload for a WAITING instance-group cluster with Trino.

    Returns:
        The ``Cluster`` part of a DescribeCluster response
    """
    return {
        "Id": "j-1234567890ABC",
        "Name": "trino-prod",
        "Status": {"State": "WAITING"},
        "InstanceCollectionType": "INSTANCE_GROUP",
        "Applications": [
            {"Name": "Hadoop", "Version": "3.3.3"},
            {"Name": "Trino", "Version": "398"},
        ],
    }
