"""Pytest configuration and fixtures for egress IP unit tests."""

import pytest

from egressip.context import EgressIPContext
from egressip.directory import NetworkDirectory
from egressip.models import Node
from egressip.provider import EgressIPProvider

from neutron_fakes import (
    NET_1,
    PORT_A,
    PORT_B,
    SERVER_A,
    SERVER_B,
    SUBNET_V4,
    SUBNET_V6,
    FakeNeutronClient,
)


@pytest.fixture
def neutron():
    """Fake Neutron with one IPv4 and one IPv6 subnet on NET_1 and a port per server."""
    client = FakeNeutronClient()
    client.add_subnet(SUBNET_V4, NET_1, "10.0.0.0/24")
    client.add_subnet(SUBNET_V6, NET_1, "fd00:10::/64")
    client.add_port(
        PORT_A,
        NET_1,
        device_owner="compute:nova",
        device_id=SERVER_A,
        fixed_ips=[
            {"subnet_id": SUBNET_V4, "ip_address": "10.0.0.10"},
            {"subnet_id": SUBNET_V6, "ip_address": "fd00:10::10"},
        ],
    )
    client.add_port(
        PORT_B,
        NET_1,
        device_owner="compute:nova",
        device_id=SERVER_B,
        fixed_ips=[{"subnet_id": SUBNET_V4, "ip_address": "10.0.0.11"}],
    )
    return client


@pytest.fixture
def ctx(neutron):
    return EgressIPContext(
        directory=NetworkDirectory(neutron),
        conflict_retry_interval=0.0,
        conflict_retry_jitter=0.0,
    )


@pytest.fixture
def provider(ctx):
    return EgressIPProvider(ctx)


@pytest.fixture
def node_a():
    return Node(name="worker-a", provider_id=f"openstack:///{SERVER_A}")


@pytest.fixture
def node_b():
    return Node(name="worker-b", provider_id=f"openstack:///{SERVER_B}")
