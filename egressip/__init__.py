"""
Egress IP allocation for OpenStack nodes.

This package binds secondary (egress) IP addresses to Nova servers by
reserving them with unattached Neutron ports and allowing them on the
servers' ports through allowed_address_pairs.
"""

__version__ = "0.1.0"
__all__ = ["configuration", "context", "exceptions", "models", "provider"]
