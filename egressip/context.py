"""Explicit context threaded through every allocator operation."""

from dataclasses import dataclass

from keystoneauth1 import adapter as ks_adapter
from keystoneauth1 import loading as ks_loading
from neutronclient.v2_0 import client as neutron_client
from oslo_log import log as logging

from .configuration import CONF_GROUP, NEUTRON_GROUP
from .directory import NetworkDirectory

LOG = logging.getLogger(__name__)


@dataclass
class EgressIPContext:
    """Live service handles plus the knobs the operations read.

    Built once by init_context() (or directly in tests) and passed to every
    operation. Nothing in the package keeps it in module state.
    """

    directory: NetworkDirectory
    provider_id_prefix: str = "openstack:///"
    compute_device_owner: str = "compute:nova"
    egress_device_owner: str = "EgressIP"
    max_capacity: int = 64
    release_retry_count: int = 10
    conflict_retry_steps: int = 5
    conflict_retry_interval: float = 0.01
    conflict_retry_factor: float = 1.0
    conflict_retry_jitter: float = 0.1
    verify_instance_exists: bool = False


def _create_clients(conf):
    """Create the Neutron client and compute adapter from the [neutron] section.

    Follows the usual OpenStack consumer pattern: keystoneauth1 auth and
    session loaded from the [neutron] config group.

    Returns:
        Tuple (neutron client, compute adapter)

    Raises:
        ValueError: Neutron authentication not configured
    """
    auth = ks_loading.load_auth_from_conf_options(conf, NEUTRON_GROUP)
    if not auth:
        raise ValueError(
            "Neutron authentication not configured. "
            "Please configure the [neutron] section with "
            "auth_url, auth_type, username, password, project_name, etc."
        )

    session = ks_loading.load_session_from_conf_options(conf, NEUTRON_GROUP, auth=auth)

    group = getattr(conf, NEUTRON_GROUP)
    neutron = neutron_client.Client(
        session=session,
        region_name=group.region_name,
        endpoint_override=group.endpoint_override,
    )
    compute = ks_adapter.Adapter(
        session=session,
        service_type="compute",
        region_name=group.region_name,
        interface=group.valid_interfaces,
    )
    return neutron, compute


def init_context(conf, group=None) -> EgressIPContext:
    """Build the context from parsed configuration.

    Args:
        conf: oslo_config.cfg.ConfigOpts with register_opts() applied and parsed
        group: Group the allocator options were registered in (default: CONF_GROUP)

    Returns:
        EgressIPContext
    """
    if group is None:
        group = CONF_GROUP

    neutron, compute = _create_clients(conf)
    opts = getattr(conf, group)

    ctx = EgressIPContext(
        directory=NetworkDirectory(neutron, compute),
        provider_id_prefix=opts.provider_id_prefix,
        compute_device_owner=opts.compute_device_owner,
        egress_device_owner=opts.egress_device_owner,
        max_capacity=opts.max_capacity_per_interface,
        release_retry_count=opts.release_retry_count,
        conflict_retry_steps=opts.conflict_retry_steps,
        conflict_retry_interval=opts.conflict_retry_interval,
        conflict_retry_factor=opts.conflict_retry_factor,
        conflict_retry_jitter=opts.conflict_retry_jitter,
        verify_instance_exists=opts.verify_instance_exists,
    )
    LOG.info(
        "Egress IP context initialized (egress device_owner %s, capacity ceiling %d)",
        ctx.egress_device_owner,
        ctx.max_capacity,
    )
    return ctx
