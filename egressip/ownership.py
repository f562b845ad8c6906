"""Ownership tags of reservation ports.

Neutron has no lock primitive for an IP address. A reservation is an
unattached port holding the address as its fixed IP, and the port's
device_owner/device_id pair records which server the reservation belongs to:

    device_owner = <egress tag>
    device_id    = <egress tag>_<server UUID>

The device_id repeats the tag so that a reservation port is never listed as
one of the server's own interfaces (device_id = <server UUID>).
"""

from dataclasses import dataclass

from .exceptions import InvalidInstanceID
from .models import Port

# Neutron limits device_id to 255 characters
DEVICE_ID_MAX_LENGTH = 255


@dataclass(frozen=True)
class OwnershipToken:
    device_owner: str
    device_id: str

    @classmethod
    def for_instance(cls, instance_id: str, egress_tag: str) -> "OwnershipToken":
        """Derive the token for reservations made on behalf of a server.

        Args:
            instance_id: Nova server UUID
            egress_tag: Configured egress device_owner

        Returns:
            OwnershipToken

        Raises:
            InvalidInstanceID: instance_id is empty or too long for device_id
        """
        if not instance_id:
            raise InvalidInstanceID(instance_id=instance_id, details="server ID is empty")
        if len(instance_id) > DEVICE_ID_MAX_LENGTH - 1 - len(egress_tag):
            raise InvalidInstanceID(
                instance_id=instance_id,
                details=f"server ID does not fit into a device_id next to tag '{egress_tag}'",
            )
        return cls(device_owner=egress_tag, device_id=f"{egress_tag}_{instance_id}")

    def owns(self, port: Port) -> bool:
        return port.device_owner == self.device_owner and port.device_id == self.device_id
