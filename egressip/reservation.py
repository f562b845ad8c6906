"""Reserve egress IPs with unattached Neutron ports.

Neutron refuses to create two ports with the same fixed IP on a subnet, which
makes an unattached port holding the address a reliable reservation. No other
locking is done here.
"""

from oslo_log import log as logging

from .exceptions import (
    OwnershipMismatch,
    RemoteDirectoryError,
    RemoteResourceNotFound,
    ReservationFailed,
    ReservationIntegrityError,
    ReservationNotFound,
)
from .locator import parse_address
from .models import Port, Subnet
from .ownership import OwnershipToken

LOG = logging.getLogger(__name__)


def reservation_port_name(address) -> str:
    return f"egressip-{address}"


def reserve(ctx, subnet: Subnet, address, instance_id: str) -> Port:
    """Create the reservation port holding the address on the subnet.

    Args:
        ctx: EgressIPContext
        subnet: Subnet the address belongs to
        address: ipaddress address object
        instance_id: Nova server UUID the reservation is made for

    Returns:
        The created reservation Port

    Raises:
        InvalidInstanceID: instance_id cannot be turned into an owner tag
        ReservationFailed: Neutron refused the port (address taken, quota, ...)
    """
    token = OwnershipToken.for_instance(instance_id, ctx.egress_device_owner)

    body = {
        "name": reservation_port_name(address),
        "network_id": subnet.network_id,
        "fixed_ips": [{"subnet_id": subnet.id, "ip_address": str(address)}],
        "device_owner": token.device_owner,
        "device_id": token.device_id,
    }
    try:
        port = ctx.directory.create_port(body)
    except RemoteDirectoryError as e:
        LOG.warning("Could not reserve IP address %s on subnet %s: %s", address, subnet.id, e)
        raise ReservationFailed(address=str(address), subnet_id=subnet.id, details=str(e)) from e

    LOG.info(
        "Reserved IP address %s on subnet %s with port %s for server %s",
        address,
        subnet.id,
        port.id,
        instance_id,
    )
    return port


def release(ctx, port: Port, instance_id: str) -> None:
    """Delete a reservation port after checking it belongs to the server.

    A port that is already gone counts as released.

    Raises:
        InvalidInstanceID: instance_id cannot be turned into an owner tag
        OwnershipMismatch: The port is not a reservation of this server
        RemoteDirectoryError: Deletion failed
    """
    token = OwnershipToken.for_instance(instance_id, ctx.egress_device_owner)
    if not token.owns(port):
        raise OwnershipMismatch(
            port_id=port.id,
            instance_id=instance_id,
            device_owner=port.device_owner,
            device_id=port.device_id,
        )

    try:
        ctx.directory.delete_port(port.id)
    except RemoteResourceNotFound:
        LOG.info("Reservation port %s already deleted", port.id)
        return
    LOG.info("Deleted reservation port %s for server %s", port.id, instance_id)


def find_reservation(ctx, subnet: Subnet, address, instance_id: str) -> Port:
    """Find this server's reservation port for the address on the subnet.

    Neutron cannot filter ports on a (subnet, address) fixed IP reliably, so
    every port of the network is listed and matched here.

    Raises:
        InvalidInstanceID: instance_id cannot be turned into an owner tag
        ReservationNotFound: No such port
        ReservationIntegrityError: More than one such port
        RemoteDirectoryError: Listing failed
    """
    token = OwnershipToken.for_instance(instance_id, ctx.egress_device_owner)

    found = []
    for port in ctx.directory.list_ports(network_id=subnet.network_id):
        if not token.owns(port):
            continue
        for fixed_ip in port.fixed_ips:
            if fixed_ip.subnet_id == subnet.id and parse_address(fixed_ip.ip_address) == address:
                found.append(port)
                break

    if not found:
        raise ReservationNotFound(address=str(address), subnet_id=subnet.id)
    if len(found) > 1:
        raise ReservationIntegrityError(address=str(address), subnet_id=subnet.id, count=len(found))
    return found[0]
