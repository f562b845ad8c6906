"""Egress IP assignment on OpenStack nodes.

OpenStack has no "secondary IP of a server" primitive. An egress IP is bound
to a node in two independent pieces:

1. A reservation: an unattached Neutron port holding the IP as fixed IP on
   the right subnet, tagged with the server it belongs to. Neutron's fixed IP
   uniqueness makes this the IPAM lock.
2. A grant: the IP in the allowed_address_pairs of the server port whose
   network carries that subnet.

Assignment creates both, release removes both. Either piece can be left
behind by a failure halfway through, so release looks for each of them on its
own.
"""

import ipaddress
from typing import List, Optional

from oslo_log import log as logging

from . import capacity
from . import locator
from . import permitted
from . import reservation
from .exceptions import (
    AddressNotPermitted,
    AlreadyBound,
    AssignIncomplete,
    InvalidAddress,
    InvalidInput,
    NotBound,
    ReservationNotFound,
)
from .identity import resolve_instance
from .models import EgressCapacityReport, Node

LOG = logging.getLogger(__name__)


def parse_ip(address) -> locator.IPAddress:
    if isinstance(address, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return locator.normalize_address(address)
    ip = locator.parse_address(str(address).strip())
    if ip is None:
        raise InvalidAddress(address=address)
    return ip


class EgressIPProvider:
    """Assign, move and release egress IPs on the ports of Nova servers.

    Operations are synchronous and keep no state between calls; everything
    lives in Neutron. Each operation can be retried after a failure. Concurrent
    operations on the same (address, node) are not serialized here.
    """

    def __init__(self, ctx):
        """Initialize the provider.

        Args:
            ctx: EgressIPContext built by egressip.context.init_context()
        """
        self.ctx = ctx

    def _resolve(self, node: Optional[Node], address=None) -> str:
        if node is None:
            raise InvalidInput(
                details=f"invalid None node provided when trying to handle IP address {address}"
            )
        instance_id = resolve_instance(node, self.ctx.provider_id_prefix)
        if self.ctx.verify_instance_exists:
            server = self.ctx.directory.show_server(instance_id)
            LOG.debug("Node %s is server %s (%s)", node.name, instance_id, server.get("name"))
        return instance_id

    def assign_private_ip(self, address, node: Node) -> None:
        """Bind the IP address to the node.

        If the node has two ports whose subnets contain the address, the port
        listed first by Neutron gets it. No ordering guarantee is given in
        that case.

        This is not atomic: the address is reserved first and then allowed on
        the port. If allowing fails, the reservation is deleted again (up to
        release_retry_count attempts). A crash in between leaves a reservation
        that release_private_ip() cleans up.

        Raises:
            AlreadyBound: The address is already allowed on the node; callers
                usually treat this as success
            NoMatchingSubnet: No subnet of the node contains the address
            AmbiguousConfiguration: Two subnets on one port contain the address
            ReservationFailed: The address could not be reserved (e.g., taken)
            AssignIncomplete: The address was reserved but could not be allowed
        """
        ip = parse_ip(address)
        instance_id = self._resolve(node, ip)

        subnet, port = locator.locate_subnet_and_interface(self.ctx, ip, instance_id, node.name)

        held = reservation.reserve(self.ctx, subnet, ip, instance_id)
        try:
            permitted.grant(self.ctx, port.id, ip)
        except AlreadyBound:
            # Another writer allowed it in the meantime
            LOG.info("IP address %s was already allowed on port %s", ip, port.id)
        except Exception as e:
            released, release_status = self._rollback_reservation(held, instance_id)
            raise AssignIncomplete(
                address=str(ip),
                port_id=port.id,
                details=str(e),
                release_status=release_status,
                original_error=e,
                released=released,
            ) from e

        LOG.info("Assigned IP address %s to node %s on port %s", ip, node.name, port.id)

    def _rollback_reservation(self, held, instance_id):
        attempts = self.ctx.release_retry_count
        status = "Did not try to release neutron port reservation."
        for attempt in range(1, attempts + 1):
            try:
                reservation.release(self.ctx, held, instance_id)
                return True, "Released neutron port reservation."
            except Exception as e:
                LOG.warning(
                    "Could not release reservation port %s on attempt %d/%d: %s",
                    held.id,
                    attempt,
                    attempts,
                    e,
                )
                status = f"Could not release neutron port reservation after {attempt} tries, err: {e}"
        LOG.error("Giving up on reservation port %s: %s", held.id, status)
        return False, status

    def _revoke_if_present(self, port_id, ip):
        try:
            permitted.revoke(self.ctx, port_id, ip)
        except AddressNotPermitted:
            # Removed by another writer since the port was listed
            LOG.info("IP address %s is no longer allowed on port %s", ip, port_id)

    def allows_move_private_ip(self) -> bool:
        return True

    def move_private_ip(self, address, node_from: Node, node_to: Node) -> None:
        """Move the grant of the IP address from one node to another.

        Only allowed_address_pairs change. The reservation port stays owned by
        the server it was created for.

        Raises:
            NoMatchingSubnet: No subnet of node_to contains the address
            AmbiguousConfiguration: Two subnets on one port contain the address
        """
        ip = parse_ip(address)
        if node_from is None or node_to is None:
            raise InvalidInput(
                details=f"invalid None node provided when trying to move IP address {ip}"
            )

        from_instance_id = self._resolve(node_from, ip)
        to_instance_id = self._resolve(node_to, ip)

        for port in locator.attached_interfaces(self.ctx, from_instance_id):
            if locator.is_address_permitted(port, ip):
                self._revoke_if_present(port.id, ip)

        try:
            _, port = locator.locate_subnet_and_interface(self.ctx, ip, to_instance_id, node_to.name)
        except AlreadyBound:
            LOG.info("IP address %s is already allowed on node %s", ip, node_to.name)
            return

        try:
            permitted.grant(self.ctx, port.id, ip)
        except AlreadyBound:
            LOG.info("IP address %s was already allowed on port %s", ip, port.id)

        LOG.info("Moved IP address %s from node %s to node %s", ip, node_from.name, node_to.name)

    def release_private_ip(self, address, node: Node) -> None:
        """Unbind the IP address from the node.

        Every port of the node is visited: the address is removed from its
        allowed_address_pairs, and every reservation of the node for the
        address on any subnet of the port's network is deleted. The sweep does
        not stop at the first hit, because subnets with identical CIDRs on the
        same node can each hold a reservation.

        A failure aborts the sweep; retrying picks up whatever is left.

        Raises:
            NotBound: Nothing was found for the address; callers usually
                ignore this
        """
        ip = parse_ip(address)
        instance_id = self._resolve(node, ip)

        found = False
        for port in locator.attached_interfaces(self.ctx, instance_id):
            if locator.is_address_permitted(port, ip):
                found = True
                self._revoke_if_present(port.id, ip)

            for subnet in locator.matching_subnets(self.ctx, port, ip):
                try:
                    held = reservation.find_reservation(self.ctx, subnet, ip, instance_id)
                except ReservationNotFound:
                    continue
                found = True
                reservation.release(self.ctx, held, instance_id)

        if not found:
            raise NotBound(address=str(ip), node=node.name)

        LOG.info("Released IP address %s from node %s", ip, node.name)

    def get_node_egress_ip_configuration(self, node: Node) -> List[EgressCapacityReport]:
        """Report the egress IP capacity of every port of the node.

        Only call this before egress IPs are assigned to the node; assigned
        addresses count as used and the capacity comes out too low.
        """
        if node is None:
            raise InvalidInput(
                details="invalid None node provided when trying to get node egress IP configuration"
            )
        instance_id = self._resolve(node)
        return capacity.node_capacity_report(self.ctx, instance_id, node.name)
