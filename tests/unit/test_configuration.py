"""Unit tests for egress IP configuration."""

import pytest
from oslo_config import cfg

from egressip import configuration


@pytest.fixture
def conf():
    conf = cfg.ConfigOpts()
    configuration.register_opts(conf)
    conf(args=[], default_config_files=[])
    return conf


def test_egressip_defaults(conf):
    assert conf.egressip.provider_id_prefix == "openstack:///"
    assert conf.egressip.compute_device_owner == "compute:nova"
    assert conf.egressip.egress_device_owner == "EgressIP"
    assert conf.egressip.max_capacity_per_interface == 64
    assert conf.egressip.release_retry_count == 10
    assert conf.egressip.conflict_retry_steps == 5
    assert conf.egressip.conflict_retry_interval == 0.01
    assert conf.egressip.conflict_retry_factor == 1.0
    assert conf.egressip.conflict_retry_jitter == 0.1
    assert conf.egressip.verify_instance_exists is False


def test_neutron_group_has_keystoneauth_options(conf):
    assert "auth_type" in conf.neutron
    assert "region_name" in conf.neutron
    assert "timeout" in conf.neutron


def test_override(conf):
    conf.set_override("egress_device_owner", "cluster-egress", group="egressip")

    assert conf.egressip.egress_device_owner == "cluster-egress"


def test_capacity_ceiling_must_be_positive(conf):
    with pytest.raises(ValueError):
        conf.set_override("max_capacity_per_interface", 0, group="egressip")


def test_list_opts():
    groups = dict(configuration.list_opts())

    assert set(groups) == {"egressip", "neutron"}
    assert any(opt.name == "conflict_retry_steps" for opt in groups["egressip"])
    assert any(opt.name == "auth_type" for opt in groups["neutron"])


def test_register_opts_leaves_global_conf_alone(conf):
    assert "egressip" not in cfg.CONF


def test_register_opts_custom_group():
    conf = cfg.ConfigOpts()
    configuration.register_opts(conf, group="cluster_egress")
    conf(args=[], default_config_files=[])

    assert conf.cluster_egress.egress_device_owner == "EgressIP"
    assert "egressip" not in conf
