"""Data types exchanged between the allocator and its callers."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Node:
    """Cluster node handle.

    Attributes:
        name: Node name, only used in messages
        provider_id: Provider ID (e.g., "openstack:///<server UUID>")
    """

    name: str
    provider_id: str


@dataclass
class FixedIP:
    subnet_id: str
    ip_address: str


@dataclass
class AddressPair:
    ip_address: str
    mac_address: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        # Neutron takes the port's own MAC when mac_address is left out
        pair = {"ip_address": self.ip_address}
        if self.mac_address:
            pair["mac_address"] = self.mac_address
        return pair


@dataclass
class Port:
    """Neutron port.

    Attributes:
        id: Port UUID
        network_id: Network UUID
        device_owner: Owner tag ("compute:nova" for server interfaces)
        device_id: Device tag (server UUID for server interfaces)
        name: Port name
        fixed_ips: Addresses allocated to the port, in Neutron order
        allowed_address_pairs: Extra addresses the port may send from
        revision_number: Neutron revision, bumped on every update
    """

    id: str
    network_id: str
    device_owner: str = ""
    device_id: str = ""
    name: str = ""
    fixed_ips: List[FixedIP] = field(default_factory=list)
    allowed_address_pairs: List[AddressPair] = field(default_factory=list)
    revision_number: Optional[int] = None

    @classmethod
    def from_dict(cls, port: Dict[str, Any]) -> "Port":
        return cls(
            id=port["id"],
            network_id=port.get("network_id", ""),
            device_owner=port.get("device_owner") or "",
            device_id=port.get("device_id") or "",
            name=port.get("name") or "",
            fixed_ips=[
                FixedIP(subnet_id=ip.get("subnet_id", ""), ip_address=ip["ip_address"])
                for ip in port.get("fixed_ips") or []
            ],
            allowed_address_pairs=[
                AddressPair(ip_address=pair["ip_address"], mac_address=pair.get("mac_address"))
                for pair in port.get("allowed_address_pairs") or []
            ],
            revision_number=port.get("revision_number"),
        )


@dataclass
class Subnet:
    id: str
    network_id: str
    cidr: str
    ip_version: Optional[int] = None

    @classmethod
    def from_dict(cls, subnet: Dict[str, Any]) -> "Subnet":
        return cls(
            id=subnet["id"],
            network_id=subnet.get("network_id", ""),
            cidr=subnet.get("cidr", ""),
            ip_version=subnet.get("ip_version"),
        )


@dataclass
class EgressCapacityReport:
    """Egress IP capacity of one server port.

    Absent address families have both their CIDR and capacity set to None.

    Attributes:
        interface: Port UUID
        ipv4: IPv4 subnet CIDR bound to the port (e.g., "10.0.0.0/24")
        ipv6: IPv6 subnet CIDR bound to the port
        ipv4_capacity: Number of additional IPv4 egress IPs the port can take
        ipv6_capacity: Number of additional IPv6 egress IPs the port can take
    """

    interface: str
    ipv4: Optional[str] = None
    ipv6: Optional[str] = None
    ipv4_capacity: Optional[int] = None
    ipv6_capacity: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        ifaddr = {}
        capacity = {}
        if self.ipv4 is not None:
            ifaddr["ipv4"] = self.ipv4
            capacity["ipv4"] = self.ipv4_capacity
        if self.ipv6 is not None:
            ifaddr["ipv6"] = self.ipv6
            capacity["ipv6"] = self.ipv6_capacity
        return {
            "interface": self.interface,
            "ifaddr": ifaddr,
            "capacity": capacity,
        }
