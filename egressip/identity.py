"""Node to Nova server resolution."""

import uuid

from .exceptions import InvalidInput, InvalidProviderID


def is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (TypeError, ValueError, AttributeError):
        return False
    return True


def resolve_instance(node, prefix: str) -> str:
    """Extract the Nova server ID from a node's provider ID.

    Args:
        node: Node handle with a provider_id attribute
        prefix: Provider ID prefix (e.g., "openstack:///")

    Returns:
        Server UUID string as found in the provider ID

    Raises:
        InvalidInput: node is None
        InvalidProviderID: The remainder of the provider ID is not a UUID
    """
    if node is None:
        raise InvalidInput(details="node must not be None")

    provider_id = node.provider_id or ""
    instance_id = provider_id
    if prefix and provider_id.startswith(prefix):
        instance_id = provider_id[len(prefix):]

    if not is_uuid(instance_id):
        raise InvalidProviderID(provider_id=provider_id)
    return instance_id
