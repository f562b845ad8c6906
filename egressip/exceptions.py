"""Egress IP allocator exceptions."""


class EgressIPException(Exception):
    """Base exception for egress IP allocation errors."""

    message = "An unknown exception occurred."

    def __init__(self, message=None, **kwargs):
        """Initialize exception with optional custom message."""
        self.kwargs = kwargs
        if message:
            self.message = message
        super(EgressIPException, self).__init__(self.message % kwargs)


class InvalidInput(EgressIPException):
    """Caller supplied an unusable argument."""

    message = "Invalid input: %(details)s"


class InvalidProviderID(InvalidInput):
    """Node provider ID does not carry a Nova server UUID."""

    message = "Cannot parse valid nova server ID from providerID '%(provider_id)s'"


class InvalidInstanceID(InvalidInput):
    """Instance ID is empty, malformed or too long to derive an owner tag from."""

    message = "Invalid server ID '%(instance_id)s': %(details)s"


class InvalidNetworkID(InvalidInput):
    """Network ID is not a UUID."""

    message = "Network ID '%(network_id)s' is not a valid UUID"


class InvalidAddress(InvalidInput):
    """Requested egress IP is not an IP address."""

    message = "'%(address)s' is not a valid IP address"


class InvalidSubnet(InvalidInput):
    """Subnet CIDR reported by Neutron cannot be parsed."""

    message = "Could not parse subnet CIDR %(cidr)s for network %(network_id)s"


class AlreadyBound(EgressIPException):
    """The address is already allowed on the node.

    This is part of normal operation. Callers are expected to treat it as
    success.
    """

    message = "IP address %(address)s is already allowed on port %(port_id)s"


class NotBound(EgressIPException):
    """The address is neither allowed nor reserved anywhere on the node.

    This is part of normal operation for release. Callers are expected to
    ignore it.
    """

    message = "IP address %(address)s is not assigned to node %(node)s"


class AmbiguousConfiguration(EgressIPException):
    """Neutron configuration does not allow a single answer.

    Never retried; an operator has to fix the subnets or ports.
    """

    message = "Ambiguous network configuration: %(details)s"


class NoMatchingSubnet(EgressIPException):
    """No subnet attached to the node contains the address."""

    message = "Could not assign IP address %(address)s to node %(node)s: no attached subnet contains it"


class RemoteDirectoryError(EgressIPException):
    """Neutron or Nova API error."""

    message = "OpenStack API error: %(details)s"


class RemoteDirectoryAuthenticationError(RemoteDirectoryError):
    """Keystone rejected the credentials."""

    message = "OpenStack authentication error: %(details)s"


class RemoteResourceNotFound(RemoteDirectoryError):
    """A port, subnet or server disappeared or never existed."""

    message = "OpenStack resource not found: %(details)s"


class ReservationFailed(RemoteDirectoryError):
    """Reservation port could not be created.

    An IP address already held by another port on the subnet ends up here.
    """

    message = "Could not reserve IP address %(address)s on subnet %(subnet_id)s: %(details)s"


class OptimisticConflict(EgressIPException):
    """Port revision changed between read and update."""

    message = "Port %(port_id)s was modified concurrently: %(details)s"


class OwnershipMismatch(EgressIPException):
    """Refusing to delete a port that belongs to somebody else."""

    message = (
        "Cannot delete port '%(port_id)s' for node with server ID '%(instance_id)s', "
        "it belongs to another device owner (%(device_owner)s) and/or device (%(device_id)s)"
    )


class ReservationNotFound(EgressIPException):
    """No reservation port holds the address on the subnet."""

    message = "No reservation port for IP address %(address)s on subnet %(subnet_id)s"


class ReservationIntegrityError(EgressIPException):
    """More than one reservation port holds the same address on the subnet."""

    message = "Expected a single reservation port for IP address %(address)s on subnet %(subnet_id)s, found %(count)d"


class AddressNotPermitted(EgressIPException):
    """Address is not in the port's allowed_address_pairs."""

    message = "IP address '%(address)s' is not allowed on port '%(port_id)s', cannot unallow it"


class AssignIncomplete(EgressIPException):
    """Reservation succeeded but allowing the address on the port did not.

    The original error is kept in ``original_error`` and as ``__cause__``.
    ``released`` tells whether the reservation was rolled back.
    """

    message = "Could not allow IP address %(address)s on port %(port_id)s, err: %(details)s. %(release_status)s"

    def __init__(self, message=None, original_error=None, released=False, **kwargs):
        self.original_error = original_error
        self.released = released
        super(AssignIncomplete, self).__init__(message, **kwargs)
