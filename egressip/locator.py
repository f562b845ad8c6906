"""Find the server port and subnet an egress IP belongs to."""

import ipaddress
from typing import List, Optional, Tuple, Union

from oslo_log import log as logging

from .exceptions import (
    AlreadyBound,
    AmbiguousConfiguration,
    InvalidInstanceID,
    InvalidNetworkID,
    NoMatchingSubnet,
    RemoteDirectoryError,
)
from .identity import is_uuid
from .models import Port, Subnet

LOG = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def normalize_address(address: IPAddress) -> IPAddress:
    """Fold IPv4-mapped IPv6 addresses (::ffff:a.b.c.d) into plain IPv4."""
    if address.version == 6 and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def parse_address(value: str) -> Optional[IPAddress]:
    """Parse a single IP address, returning None for anything else (CIDRs included).

    IPv4-mapped IPv6 addresses come back as IPv4, so "::ffff:10.0.0.5" and
    "10.0.0.5" compare equal.
    """
    try:
        return normalize_address(ipaddress.ip_address(value))
    except ValueError:
        return None


def parse_cidr(cidr: str) -> Optional[IPNetwork]:
    try:
        return ipaddress.ip_network(cidr, strict=False)
    except ValueError:
        return None


def is_address_permitted(port: Port, address: IPAddress) -> bool:
    """Tell whether the address is in the port's allowed_address_pairs.

    Addresses are compared as values, so "fd00::1" matches "fd00:0::0001".
    """
    for pair in port.allowed_address_pairs:
        if parse_address(pair.ip_address) == address:
            return True
    return False


def attached_interfaces(ctx, instance_id: str) -> List[Port]:
    """List all ports attached to the Nova server."""
    if not is_uuid(instance_id):
        raise InvalidInstanceID(instance_id=instance_id, details="not a valid UUID")
    return ctx.directory.list_ports(
        device_owner=ctx.compute_device_owner,
        device_id=instance_id,
    )


def subnets_for_network(ctx, network_id: str) -> List[Subnet]:
    """List all subnets of the network."""
    if not is_uuid(network_id):
        raise InvalidNetworkID(network_id=network_id)
    return ctx.directory.list_subnets(network_id)


def matching_subnets(ctx, port: Port, address) -> List[Subnet]:
    """Subnets of the port's network whose CIDR contains the address.

    A network whose subnets cannot be listed and subnets with an unparsable
    CIDR are logged and skipped.
    """
    try:
        subnets = subnets_for_network(ctx, port.network_id)
    except (RemoteDirectoryError, InvalidNetworkID) as e:
        LOG.warning("Could not find subnet information for network %s, err: %s", port.network_id, e)
        return []

    matches = []
    for subnet in subnets:
        network = parse_cidr(subnet.cidr)
        if network is None:
            LOG.warning(
                "Could not parse subnet information %s for network %s", subnet.cidr, port.network_id
            )
            continue
        if address in network:
            matches.append(subnet)
    return matches


def locate_subnet_and_interface(ctx, address, instance_id: str, node_name: str = "") -> Tuple[Subnet, Port]:
    """Pick the server port and subnet that should host the address.

    Ports are scanned in the order Neutron lists them. If two ports have a
    subnet containing the address, the first one listed wins; Neutron does not
    guarantee that order, so the choice between them is not deterministic.

    Args:
        ctx: EgressIPContext
        address: ipaddress address object
        instance_id: Nova server UUID
        node_name: Node name for messages

    Returns:
        Tuple (subnet, port)

    Raises:
        AlreadyBound: A port of the server already allows the address
        AmbiguousConfiguration: Two subnets on one port contain the address
        NoMatchingSubnet: No port has a subnet containing the address
    """
    for port in attached_interfaces(ctx, instance_id):
        if is_address_permitted(port, address):
            raise AlreadyBound(address=str(address), port_id=port.id)

        matches = matching_subnets(ctx, port, address)
        if len(matches) > 1:
            raise AmbiguousConfiguration(
                details=(
                    f"requested IP address {address} for node {node_name} and port {port.id} "
                    f"matches 2 different subnets, {matches[0].id} and {matches[1].id}"
                )
            )
        if matches:
            LOG.debug("IP address %s fits subnet %s on port %s", address, matches[0].id, port.id)
            return matches[0], port

    raise NoMatchingSubnet(address=str(address), node=node_name)
