"""Unit tests for reservation ports."""

import ipaddress

import pytest
from neutronclient.common import exceptions as neutron_exceptions

from egressip import exceptions
from egressip import reservation
from egressip.models import Port, Subnet

from neutron_fakes import NET_1, SERVER_A, SERVER_B, SUBNET_V4, SUBNET_V6

IP = ipaddress.ip_address

OWNER_A = f"EgressIP_{SERVER_A}"


@pytest.fixture
def subnet_v4():
    return Subnet(id=SUBNET_V4, network_id=NET_1, cidr="10.0.0.0/24")


class TestReserve:
    """Tests for reserve."""

    def test_creates_tagged_unattached_port(self, ctx, neutron, subnet_v4):
        port = reservation.reserve(ctx, subnet_v4, IP("10.0.0.50"), SERVER_A)

        created = neutron.ports[port.id]
        assert created["name"] == "egressip-10.0.0.50"
        assert created["network_id"] == NET_1
        assert created["device_owner"] == "EgressIP"
        assert created["device_id"] == OWNER_A
        assert created["fixed_ips"] == [{"subnet_id": SUBNET_V4, "ip_address": "10.0.0.50"}]

    def test_taken_address_fails(self, ctx, subnet_v4):
        reservation.reserve(ctx, subnet_v4, IP("10.0.0.50"), SERVER_A)

        with pytest.raises(exceptions.ReservationFailed, match="already allocated"):
            reservation.reserve(ctx, subnet_v4, IP("10.0.0.50"), SERVER_B)

    def test_address_of_server_port_is_taken(self, ctx, subnet_v4):
        with pytest.raises(exceptions.ReservationFailed):
            reservation.reserve(ctx, subnet_v4, IP("10.0.0.10"), SERVER_B)

    def test_invalid_instance_id(self, ctx, neutron, subnet_v4):
        with pytest.raises(exceptions.InvalidInstanceID):
            reservation.reserve(ctx, subnet_v4, IP("10.0.0.50"), "")
        assert neutron.ports_owned_by("EgressIP") == []


class TestRelease:
    """Tests for release."""

    def test_deletes_own_reservation(self, ctx, neutron, subnet_v4):
        port = reservation.reserve(ctx, subnet_v4, IP("10.0.0.50"), SERVER_A)

        reservation.release(ctx, port, SERVER_A)

        assert port.id not in neutron.ports

    def test_refuses_foreign_reservation(self, ctx, neutron, subnet_v4):
        port = reservation.reserve(ctx, subnet_v4, IP("10.0.0.50"), SERVER_A)

        with pytest.raises(exceptions.OwnershipMismatch, match="belongs to another device owner"):
            reservation.release(ctx, port, SERVER_B)

        assert port.id in neutron.ports

    def test_refuses_server_port(self, ctx, neutron):
        port = Port.from_dict(neutron.ports["port-a-0000"])

        with pytest.raises(exceptions.OwnershipMismatch):
            reservation.release(ctx, port, SERVER_A)

        assert "port-a-0000" in neutron.ports

    def test_already_deleted_counts_as_released(self, ctx, neutron, subnet_v4):
        port = reservation.reserve(ctx, subnet_v4, IP("10.0.0.50"), SERVER_A)
        del neutron.ports[port.id]

        reservation.release(ctx, port, SERVER_A)

    def test_delete_failure_propagates(self, ctx, neutron, subnet_v4):
        port = reservation.reserve(ctx, subnet_v4, IP("10.0.0.50"), SERVER_A)
        neutron.delete_error = neutron_exceptions.ServiceUnavailable(message="down")

        with pytest.raises(exceptions.RemoteDirectoryError):
            reservation.release(ctx, port, SERVER_A)


class TestFindReservation:
    """Tests for find_reservation."""

    def test_finds_reservation(self, ctx, subnet_v4):
        created = reservation.reserve(ctx, subnet_v4, IP("10.0.0.50"), SERVER_A)

        found = reservation.find_reservation(ctx, subnet_v4, IP("10.0.0.50"), SERVER_A)

        assert found.id == created.id

    def test_ignores_other_servers_reservation(self, ctx, subnet_v4):
        reservation.reserve(ctx, subnet_v4, IP("10.0.0.50"), SERVER_B)

        with pytest.raises(exceptions.ReservationNotFound):
            reservation.find_reservation(ctx, subnet_v4, IP("10.0.0.50"), SERVER_A)

    def test_subnet_identity_not_cidr(self, ctx, neutron, subnet_v4):
        neutron.add_subnet("twin-subnet", NET_1, "10.0.0.0/24")
        twin = Subnet(id="twin-subnet", network_id=NET_1, cidr="10.0.0.0/24")
        reservation.reserve(ctx, twin, IP("10.0.0.50"), SERVER_A)

        with pytest.raises(exceptions.ReservationNotFound):
            reservation.find_reservation(ctx, subnet_v4, IP("10.0.0.50"), SERVER_A)

    def test_matches_formatting_variants(self, ctx, neutron):
        subnet_v6 = Subnet(id=SUBNET_V6, network_id=NET_1, cidr="fd00:10::/64")
        neutron.add_port(
            "held-v6",
            NET_1,
            device_owner="EgressIP",
            device_id=OWNER_A,
            fixed_ips=[{"subnet_id": SUBNET_V6, "ip_address": "fd00:10:0:0::50"}],
        )

        found = reservation.find_reservation(ctx, subnet_v6, IP("fd00:10::50"), SERVER_A)

        assert found.id == "held-v6"

    def test_duplicates_are_an_integrity_error(self, ctx, neutron, subnet_v4):
        for port_id in ("held-1", "held-2"):
            neutron.add_port(
                port_id,
                NET_1,
                device_owner="EgressIP",
                device_id=OWNER_A,
                fixed_ips=[{"subnet_id": SUBNET_V4, "ip_address": "10.0.0.50"}],
            )

        with pytest.raises(exceptions.ReservationIntegrityError, match="found 2"):
            reservation.find_reservation(ctx, subnet_v4, IP("10.0.0.50"), SERVER_A)
