"""Configuration options for the egress IP allocator."""

from keystoneauth1 import loading as ks_loading
from oslo_config import cfg
from oslo_log import log as logging

# Configuration group names
CONF_GROUP = "egressip"
NEUTRON_GROUP = "neutron"


def _get_egressip_opts():
    """Get egress IP allocator configuration options.

    Returns:
        List of oslo_config options
    """
    return [
        # Node identity
        cfg.StrOpt(
            "provider_id_prefix",
            default="openstack:///",
            help=(
                "Prefix of the node provider ID in front of the Nova server UUID. "
                "Example provider ID: openstack:///9f8e1c2a-5b3d-4f6e-8a7b-1c2d3e4f5a6b"
            ),
        ),
        cfg.BoolOpt(
            "verify_instance_exists",
            default=False,
            help=(
                "Look the Nova server up before touching its ports. Costs one "
                "compute API call per operation."
            ),
        ),
        # Port tagging
        cfg.StrOpt(
            "compute_device_owner",
            default="compute:nova",
            help="device_owner of the Neutron ports attached to Nova servers",
        ),
        cfg.StrOpt(
            "egress_device_owner",
            default="EgressIP",
            help=(
                "device_owner of the unattached ports that reserve egress IPs. "
                "The device_id of those ports is '<egress_device_owner>_<server UUID>'. "
                "Changing this orphans existing reservations."
            ),
        ),
        # Capacity
        cfg.IntOpt(
            "max_capacity_per_interface",
            default=64,
            min=1,
            help=(
                "Ceiling of egress IPs per port and address family. Neutron has no "
                "per-port quota, so the subnet size and this value bound the capacity."
            ),
        ),
        # Retries
        cfg.IntOpt(
            "release_retry_count",
            default=10,
            min=1,
            help="Attempts to delete the reservation port when an assignment has to be rolled back",
        ),
        cfg.IntOpt(
            "conflict_retry_steps",
            default=5,
            min=1,
            help="Attempts to update allowed_address_pairs when the port revision keeps changing",
        ),
        cfg.FloatOpt(
            "conflict_retry_interval",
            default=0.01,
            min=0.0,
            help="Initial wait in seconds between allowed_address_pairs update attempts",
        ),
        cfg.FloatOpt(
            "conflict_retry_factor",
            default=1.0,
            min=1.0,
            help="Multiplier applied to the wait after every conflicting update",
        ),
        cfg.FloatOpt(
            "conflict_retry_jitter",
            default=0.1,
            min=0.0,
            help="Random fraction of the wait added to every sleep",
        ),
    ]


def register_opts(conf, group=None):
    """Register egress IP allocator configuration options.

    Also registers the keystoneauth session, auth and adapter options in the
    [neutron] group so that the clients can be loaded from it, and the
    oslo_log options.

    Args:
        conf: oslo_config.cfg.ConfigOpts instance
        group: Configuration group name (default: CONF_GROUP)
    """
    if group is None:
        group = CONF_GROUP

    conf.register_opts(_get_egressip_opts(), group=group)

    ks_loading.register_session_conf_options(conf, NEUTRON_GROUP)
    ks_loading.register_auth_conf_options(conf, NEUTRON_GROUP)
    ks_loading.register_adapter_conf_options(conf, NEUTRON_GROUP)

    logging.register_options(conf)


def setup_logging(conf, product_name="egressip"):
    """Configure oslo_log for a process embedding the allocator.

    Args:
        conf: oslo_config.cfg.ConfigOpts instance, already parsed
        product_name: Name used in log records and default log file names
    """
    logging.setup(conf, product_name)


def list_opts():
    """Return a list of egress IP options for oslo-config-generator.

    Returns:
        List of (group_name, options) tuples
    """
    return [
        (CONF_GROUP, _get_egressip_opts()),
        (
            NEUTRON_GROUP,
            ks_loading.get_session_conf_options()
            + ks_loading.get_auth_common_conf_options()
            + ks_loading.get_adapter_conf_options(),
        ),
    ]
