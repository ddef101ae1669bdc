"""
Network Identity Discovery

This package finds the addresses a packet needs before it can be built.

Modules:
- InterfaceConfigParser: ifconfig output for Linux, Darwin, FreeBSD, OpenBSD
- PlatformAdapter: platform selection, interface queries, default interface
- ArpCache: IP -> MAC table fed by `arp -na` and live resolutions
- ArpResolver: cache lookup, then ARP request/reply on the wire
- IdentityProber: whoami, local MAC/IP from a captured UDP probe
"""

from discovery.ifconfig_parser import InterfaceConfig, InterfaceConfigParser
from discovery.platform_adapter import PlatformAdapter
from discovery.arp_cache import ArpCache, ArpCacheEntry, parse_arp_table
from discovery.arp_resolver import ArpResolver
from discovery.whoami import IdentityProber, ProbeResult, ProbeState

__all__ = [
    'InterfaceConfig',
    'InterfaceConfigParser',
    'PlatformAdapter',
    'ArpCache',
    'ArpCacheEntry',
    'parse_arp_table',
    'ArpResolver',
    'IdentityProber',
    'ProbeResult',
    'ProbeState',
]
