"""Add and remove egress IPs in a port's allowed_address_pairs.

Every update carries the revision_number that was read, so a concurrent
writer makes Neutron reject it. The read-modify-write then starts over from a
fresh copy of the port.
"""

from oslo_log import log as logging

from .exceptions import AddressNotPermitted, AlreadyBound
from .locator import is_address_permitted, parse_address
from .models import AddressPair
from .retry import retry_on_conflict

LOG = logging.getLogger(__name__)


def _retry(ctx, fn):
    return retry_on_conflict(
        fn,
        steps=ctx.conflict_retry_steps,
        interval=ctx.conflict_retry_interval,
        factor=ctx.conflict_retry_factor,
        jitter=ctx.conflict_retry_jitter,
    )


def grant(ctx, port_id: str, address) -> None:
    """Append the address to the port's allowed_address_pairs.

    The MAC address is left out, Neutron fills in the port's own.

    Raises:
        AlreadyBound: The address is already allowed on the port
        OptimisticConflict: The port kept changing until the retries ran out
        RemoteDirectoryError: Any other Neutron failure
    """

    def _grant():
        port = ctx.directory.show_port(port_id)
        if is_address_permitted(port, address):
            raise AlreadyBound(address=str(address), port_id=port_id)

        pairs = list(port.allowed_address_pairs)
        pairs.append(AddressPair(ip_address=str(address)))
        ctx.directory.update_allowed_address_pairs(port_id, pairs, port.revision_number)

    _retry(ctx, _grant)
    LOG.info("Allowed IP address %s on port %s", address, port_id)


def revoke(ctx, port_id: str, address) -> None:
    """Remove every entry equal to the address from allowed_address_pairs.

    All other entries are kept as they are, duplicates included.

    Raises:
        AddressNotPermitted: The address is not allowed on the port
        OptimisticConflict: The port kept changing until the retries ran out
        RemoteDirectoryError: Any other Neutron failure
    """

    def _revoke():
        port = ctx.directory.show_port(port_id)
        if not is_address_permitted(port, address):
            raise AddressNotPermitted(address=str(address), port_id=port_id)

        pairs = [
            pair for pair in port.allowed_address_pairs
            if parse_address(pair.ip_address) != address
        ]
        ctx.directory.update_allowed_address_pairs(port_id, pairs, port.revision_number)

    _retry(ctx, _revoke)
    LOG.info("Removed IP address %s from port %s", address, port_id)
