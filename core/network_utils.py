"""
Network utilities for interface enumeration and system table access.

These are the thin OS-facing seams: everything here either asks netifaces
about configured interfaces or runs a system command and returns its text.
Parsing lives in the discovery package.
"""

import ipaddress
import logging
import random
import re
import socket
import subprocess
from typing import List, Optional, Tuple

try:
    import netifaces
    NETIFACES_AVAILABLE = True
except ImportError:
    NETIFACES_AVAILABLE = False

from config import settings
from core.errors import InterfaceNotFoundError, InvalidInterfaceNameError


logger = logging.getLogger(__name__)

_IFACE_NAME = re.compile(r'[0-9A-Za-z]+')


def _require_netifaces():
    if not NETIFACES_AVAILABLE:
        raise RuntimeError("netifaces is required for interface enumeration")


class InterfaceInfo:
    """Information about a network interface."""

    def __init__(self, name: str, mac: str = "", ip: str = "",
                 netmask: str = "", gateway: str = ""):
        self.name = name
        self.mac = mac
        self.ip = ip
        self.netmask = netmask
        self.gateway = gateway

    def __repr__(self):
        return (f"InterfaceInfo(name={self.name!r}, mac={self.mac!r}, "
                f"ip={self.ip!r}, gateway={self.gateway!r})")

    def is_valid(self) -> bool:
        """Check if interface has required attributes for ARP operations."""
        return bool(self.mac and self.ip)


def sanitize_interface_name(name) -> str:
    """
    Check that an interface name is letters and digits only.

    The name ends up in capture filters, regular expressions and command
    lines, so anything else is rejected rather than stripped.

    Raises:
        InvalidInterfaceNameError: On any other character.
    """
    name = str(name) if name is not None else ""
    if not _IFACE_NAME.fullmatch(name):
        raise InvalidInterfaceNameError(name)
    return name


def enumerate_interfaces() -> List[Tuple[str, int, str]]:
    """
    All configured addresses on the host.

    Returns:
        List of (name, family, address) tuples. family is socket.AF_INET,
        socket.AF_INET6 or netifaces.AF_LINK.
    """
    _require_netifaces()

    result = []
    for iface_name in netifaces.interfaces():
        addrs = netifaces.ifaddresses(iface_name)
        for family in (netifaces.AF_LINK, netifaces.AF_INET, netifaces.AF_INET6):
            for entry in addrs.get(family, []):
                addr = entry.get('addr')
                if addr:
                    result.append((iface_name, family, addr))
    return result


def validate_interface(interface: str) -> bool:
    """Check that the interface exists on this host."""
    _require_netifaces()
    return interface in netifaces.interfaces()


def get_interfaces() -> List[InterfaceInfo]:
    """
    Get list of all network interfaces with their information.

    Returns:
        List of InterfaceInfo objects for each interface.
    """
    _require_netifaces()

    interfaces = []
    gws = netifaces.gateways().get('default', {})
    default_gw, gw_iface = (
        gws[netifaces.AF_INET][:2] if netifaces.AF_INET in gws else (None, None)
    )

    for iface_name in netifaces.interfaces():
        info = InterfaceInfo(name=iface_name)
        addrs = netifaces.ifaddresses(iface_name)

        if netifaces.AF_LINK in addrs:
            info.mac = addrs[netifaces.AF_LINK][0].get('addr', '')

        if netifaces.AF_INET in addrs:
            inet_info = addrs[netifaces.AF_INET][0]
            info.ip = inet_info.get('addr', '')
            info.netmask = inet_info.get('netmask', '')

        if default_gw and gw_iface == iface_name:
            info.gateway = default_gw

        interfaces.append(info)

    return interfaces


def ifconfig_data_string(iface: str) -> str:
    """
    Raw `ifconfig <iface>` output.

    Raises:
        InvalidInterfaceNameError: The name is not alphanumeric.
        InterfaceNotFoundError: The interface does not exist.
        subprocess.CalledProcessError: ifconfig failed.
    """
    iface = sanitize_interface_name(iface)
    if not validate_interface(iface):
        raise InterfaceNotFoundError(iface)

    result = subprocess.run(
        [settings.IFCONFIG_COMMAND, iface],
        capture_output=True,
        text=True,
        check=True,
        timeout=settings.COMMAND_TIMEOUT
    )
    return result.stdout


def arp_cache_raw() -> str:
    """Raw `arp -na` output."""
    result = subprocess.run(
        settings.ARP_TABLE_COMMAND,
        capture_output=True,
        text=True,
        check=True,
        timeout=settings.COMMAND_TIMEOUT
    )
    return result.stdout


def rand_routable_daddr() -> str:
    """
    A random address in 177.0.0.0/8.

    The block is unassigned, so the OS routes it through the default gateway
    and default interface without it reaching a real host.
    """
    offset = random.randrange(settings.ROUTABLE_PROBE_SIZE)
    return str(ipaddress.IPv4Address(settings.ROUTABLE_PROBE_BASE + offset))


def rand_port() -> int:
    """A random unprivileged port number."""
    return random.randint(settings.PROBE_PORT_MIN, settings.PROBE_PORT_MAX)


def default_ip() -> Optional[str]:
    """
    Local IPv4 address the OS would use to reach an external host.

    Connecting a UDP socket sends nothing; it only selects a route.

    Returns:
        The address, or None if there is no route.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect((rand_routable_daddr(), rand_port()))
            return sock.getsockname()[0]
    except OSError as e:
        logger.debug("No default route: %s", e)
        return None
