"""Egress IP capacity of server ports.

Neutron has no notion of a per-port address limit. The capacity of a port for
an address family is therefore bounded by the size of its subnet and by a
configured ceiling, minus the addresses the port already uses.
"""

from typing import Dict, List, Set

from oslo_log import log as logging

from .exceptions import AmbiguousConfiguration, InvalidSubnet
from .locator import attached_interfaces, normalize_address, parse_cidr, subnets_for_network
from .models import EgressCapacityReport, Port

LOG = logging.getLogger(__name__)

ADDRESS_BITS = {4: 32, 6: 128}


def raw_capacity(prefixlen: int, version: int, ceiling: int) -> int:
    """min(ceiling, usable host count of the prefix)."""
    return min(ceiling, 2 ** (ADDRESS_BITS[version] - prefixlen) - 2)


def addresses_in_use(port: Port) -> Dict[int, Set[str]]:
    """Distinct addresses per IP version among fixed IPs and allowed address pairs."""
    used = {4: set(), 6: set()}
    values = [ip.ip_address for ip in port.fixed_ips]
    values += [pair.ip_address for pair in port.allowed_address_pairs]
    for value in values:
        network = parse_cidr(value)
        if network is None:
            LOG.warning("Ignoring unparsable address %s on port %s", value, port.id)
            continue
        if network.num_addresses == 1:
            address = normalize_address(network.network_address)
            used[address.version].add(str(address))
        else:
            # allowed_address_pairs may hold a CIDR, counted as one entry
            used[network.version].add(str(network))
    return used


def interface_capacity(ctx, port: Port) -> EgressCapacityReport:
    """Compute the egress IP capacity of one server port.

    Raises:
        RemoteDirectoryError: The port's subnets could not be listed
        InvalidSubnet: A subnet CIDR cannot be parsed
        AmbiguousConfiguration: Two subnets of the same IP version on the port
    """
    subnets = subnets_for_network(ctx, port.network_id)

    cidrs = {}
    capacity = {}
    for subnet in subnets:
        network = parse_cidr(subnet.cidr)
        if network is None:
            raise InvalidSubnet(cidr=subnet.cidr, network_id=port.network_id)
        if network.version in cidrs:
            raise AmbiguousConfiguration(
                details=(
                    f"found multiple IPv{network.version} subnets attached to port {port.id}, "
                    "this is not supported"
                )
            )
        cidrs[network.version] = str(network)
        capacity[network.version] = raw_capacity(network.prefixlen, network.version, ctx.max_capacity)

    used = addresses_in_use(port)
    for version in capacity:
        capacity[version] -= len(used[version])

    return EgressCapacityReport(
        interface=port.id,
        ipv4=cidrs.get(4),
        ipv6=cidrs.get(6),
        ipv4_capacity=capacity.get(4),
        ipv6_capacity=capacity.get(6),
    )


def node_capacity_report(ctx, instance_id: str, node_name: str = "") -> List[EgressCapacityReport]:
    """Compute the capacity of every port attached to the server.

    The numbers are only meaningful before any egress IP has been allowed on
    the server's ports; allowed addresses are subtracted as used.

    Raises:
        AmbiguousConfiguration: The same CIDR is bound to two ports
    """
    reports = []
    seen = set()
    for port in attached_interfaces(ctx, instance_id):
        report = interface_capacity(ctx, port)
        for version, cidr in ((4, report.ipv4), (6, report.ipv6)):
            if cidr is None:
                continue
            if cidr in seen:
                raise AmbiguousConfiguration(
                    details=f"IPv{version} CIDR '{cidr}' is attached more than once to node {node_name}"
                )
            seen.add(cidr)
        reports.append(report)
    return reports
