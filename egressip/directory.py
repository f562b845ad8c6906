"""Neutron and Nova access for the egress IP allocator.

Listings are drained page by page before anything is returned, so callers
never act on a partial result. Client exceptions are translated into
egressip exceptions here and nowhere else.
"""

from typing import Any, Callable, Dict, List, Optional

from keystoneauth1 import exceptions as ks_exceptions
from neutronclient.common import exceptions as neutron_exceptions
from oslo_log import log as logging

from .exceptions import (
    EgressIPException,
    OptimisticConflict,
    RemoteDirectoryAuthenticationError,
    RemoteDirectoryError,
    RemoteResourceNotFound,
)
from .models import AddressPair, Port, Subnet

LOG = logging.getLogger(__name__)

# Neutron answers a stale If-Match revision with 412 RevisionNumberConstraintFailed
PRECONDITION_FAILED = 412
REVISION_CONFLICT_TYPE = "RevisionNumberConstraintFailed"


def is_revision_conflict(error: Exception) -> bool:
    if getattr(error, "status_code", None) == PRECONDITION_FAILED:
        return True
    return REVISION_CONFLICT_TYPE in str(error)


def translate_error(action: str, error: Exception) -> EgressIPException:
    """Map a neutronclient/keystoneauth exception to an egressip exception.

    Args:
        action: What was attempted, used in the message (e.g., "list ports")
        error: Exception raised by the client

    Returns:
        Exception to raise
    """
    if isinstance(error, (ks_exceptions.Unauthorized, neutron_exceptions.Unauthorized)):
        LOG.error("OpenStack authentication failed while trying to %s: %s", action, error)
        return RemoteDirectoryAuthenticationError(details=str(error))
    if isinstance(error, (ks_exceptions.Forbidden, neutron_exceptions.Forbidden)):
        LOG.error("OpenStack permission denied while trying to %s: %s", action, error)
        return RemoteDirectoryError(details=f"Permission denied to {action}: {error}")
    if isinstance(error, (ks_exceptions.NotFound, neutron_exceptions.NotFound)):
        return RemoteResourceNotFound(details=f"Could not {action}: {error}")
    return RemoteDirectoryError(details=f"Could not {action}: {error}")


class NetworkDirectory:
    """Ports and subnets from Neutron, servers from Nova.

    Wraps an initialized neutronclient ``Client`` and, optionally, a
    keystoneauth ``Adapter`` for the compute service.
    """

    def __init__(self, neutron, compute=None):
        self._neutron = neutron
        self._compute = compute

    def _call(self, action: str, func: Callable, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except EgressIPException:
            raise
        except Exception as e:
            raise translate_error(action, e) from e

    def _drain(self, action: str, func: Callable, key: str, **filters) -> List[Dict[str, Any]]:
        def _collect():
            items = []
            for page in func(retrieve_all=False, **filters):
                items.extend(page.get(key, []))
            return items

        return self._call(action, _collect)

    def list_ports(self, **filters) -> List[Port]:
        """List all ports matching the filters (device_owner, device_id, network_id)."""
        ports = self._drain("list ports", self._neutron.list_ports, "ports", **filters)
        return [Port.from_dict(p) for p in ports]

    def show_port(self, port_id: str) -> Port:
        port = self._call(f"get port {port_id}", self._neutron.show_port, port_id)
        return Port.from_dict(port["port"])

    def create_port(self, body: Dict[str, Any]) -> Port:
        port = self._call("create port", self._neutron.create_port, {"port": body})
        return Port.from_dict(port["port"])

    def delete_port(self, port_id: str) -> None:
        self._call(f"delete port {port_id}", self._neutron.delete_port, port_id)

    def update_allowed_address_pairs(
        self, port_id: str, pairs: List[AddressPair], revision_number: Optional[int]
    ) -> Port:
        """Replace a port's allowed_address_pairs.

        The update is conditional on revision_number (If-Match) when given.

        Raises:
            OptimisticConflict: The port changed since revision_number was read
            RemoteDirectoryError: Any other failure
        """
        body = {"port": {"allowed_address_pairs": [p.to_dict() for p in pairs]}}
        try:
            port = self._neutron.update_port(port_id, body, revision_number=revision_number)
        except Exception as e:
            if is_revision_conflict(e):
                raise OptimisticConflict(port_id=port_id, details=str(e)) from e
            raise translate_error(f"update port {port_id}", e) from e
        return Port.from_dict(port["port"])

    def list_subnets(self, network_id: str) -> List[Subnet]:
        subnets = self._drain(
            f"list subnets of network {network_id}",
            self._neutron.list_subnets,
            "subnets",
            network_id=network_id,
        )
        return [Subnet.from_dict(s) for s in subnets]

    def show_server(self, instance_id: str) -> Dict[str, Any]:
        if self._compute is None:
            raise RemoteDirectoryError(details="no compute endpoint configured")
        response = self._call(
            f"get server {instance_id}", self._compute.get, f"/servers/{instance_id}"
        )
        return response.json()["server"]
