"""
ifconfig output parsing for Linux, Darwin, FreeBSD and OpenBSD.

Each platform gets its own grammar class; InterfaceConfigParser picks one by
platform id and turns the section for one interface into an InterfaceConfig.
Every netmask encoding (dotted quad, hex, prefix length) comes out as an
integer prefix.

Example:
    >>> parser = InterfaceConfigParser()
    >>> config = parser.parse("linux", raw_text, "eth0")
    >>> config.eth_saddr, str(config.ipv4)
    ('00:1c:23:35:70:3b', '10.10.10.9/23')
"""

import ipaddress
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from config import settings
from core.addresses import (
    MacAddress, ipv4_interface, ipv6_interface,
    prefix_from_dotted, prefix_from_hex
)
from core.errors import ParseError, UnsupportedPlatformError
from core.network_utils import sanitize_interface_name


@dataclass
class InterfaceConfig:
    """Canonical configuration of one interface. Only name is mandatory."""
    name: str
    eth_mac: Optional[MacAddress] = None
    ipv4: Optional[ipaddress.IPv4Interface] = None
    ipv6: Optional[ipaddress.IPv6Interface] = None

    @property
    def eth_saddr(self) -> Optional[str]:
        return str(self.eth_mac) if self.eth_mac else None

    @property
    def eth_src(self) -> Optional[bytes]:
        return self.eth_mac.packed if self.eth_mac else None

    @property
    def ip_saddr(self) -> Optional[str]:
        return str(self.ipv4.ip) if self.ipv4 else None

    @property
    def ip_src(self) -> Optional[bytes]:
        return self.ipv4.ip.packed if self.ipv4 else None

    @property
    def ip6_saddr(self) -> Optional[str]:
        return str(self.ipv6) if self.ipv6 else None

    def to_dict(self) -> Dict:
        return {
            'iface': self.name,
            'eth_saddr': self.eth_saddr,
            'ip_saddr': self.ip_saddr,
            'ip4_prefix': self.ipv4.network.prefixlen if self.ipv4 else None,
            'ip6_saddr': self.ip6_saddr,
        }


class IfconfigGrammar(ABC):
    """
    Grammar for one platform's ifconfig output.

    Subclasses supply the link-layer, inet and inet6 patterns and decode the
    netmask. Patterns run against stripped lines of the interface's section;
    the first inet and inet6 addresses win.
    """

    platform_id: str = ""
    name_case_sensitive: bool = True

    MAC_PATTERN: re.Pattern
    INET_PATTERN: re.Pattern
    INET6_PATTERN = re.compile(
        r'^inet6\s+(?:addr:\s*)?(?P<addr>[0-9a-fA-F:]+)(?:%\S+)?'
        r'(?:/(?P<len>\d+)|\s+prefixlen\s+(?P<plen>\d+))?'
    )

    def parse(self, raw_text: str, iface: str) -> InterfaceConfig:
        lines = self.find_section(raw_text or "", iface)
        config = InterfaceConfig(name=self.section_name(lines[0], iface))
        for line in lines:
            self.parse_line(line.strip(), config)
        return config

    def _header_name(self, line: str) -> str:
        return line.split()[0].rstrip(':')

    def _name_matches(self, header: str, iface: str) -> bool:
        if self.name_case_sensitive:
            return header == iface
        return header.lower() == iface.lower()

    def find_section(self, raw_text: str, iface: str) -> List[str]:
        """
        Lines belonging to iface: its header line plus the indented lines
        that follow, up to the next header.

        Raises:
            ParseError: No section for iface.
        """
        section: List[str] = []
        for line in raw_text.splitlines():
            if not line.strip():
                continue
            if not line[0].isspace():
                if section:
                    break
                if self._name_matches(self._header_name(line), iface):
                    section.append(line)
            elif section:
                section.append(line)

        if not section:
            raise ParseError(f"Cannot ifconfig {iface}: no section in "
                             f"{self.platform_id} output")
        return section

    def section_name(self, header: str, iface: str) -> str:
        return iface

    def parse_line(self, line: str, config: InterfaceConfig):
        if config.eth_mac is None:
            match = self.MAC_PATTERN.search(line)
            if match:
                config.eth_mac = MacAddress(match.group(1))

        if config.ipv4 is None:
            match = self.INET_PATTERN.search(line)
            if match:
                config.ipv4 = self._ipv4(match, config.name)
                return

        if config.ipv6 is None:
            match = self.INET6_PATTERN.search(line)
            if match:
                config.ipv6 = self._ipv6(match, config.name)

    def _ipv4(self, match, iface: str) -> ipaddress.IPv4Interface:
        mask = match.group('mask')
        try:
            prefix = self.ipv4_prefix(mask) if mask else 32
            return ipv4_interface(match.group('addr'), prefix)
        except ValueError as e:
            raise ParseError(f"Bad inet address on {iface}: {e}") from e

    def _ipv6(self, match, iface: str) -> ipaddress.IPv6Interface:
        length = match.group('len') or match.group('plen')
        try:
            return ipv6_interface(match.group('addr'),
                                  int(length) if length else 128)
        except ValueError as e:
            raise ParseError(f"Bad inet6 address on {iface}: {e}") from e

    @abstractmethod
    def ipv4_prefix(self, mask: str) -> int:
        """Prefix length for the platform's netmask notation."""


class LinuxGrammar(IfconfigGrammar):
    """
    net-tools ifconfig, both the legacy layout:

        eth0      Link encap:Ethernet  HWaddr 00:1C:23:35:70:3B
                  inet addr:10.10.10.9  Bcast:10.10.11.255  Mask:255.255.254.0
                  inet6 addr: fe80::21c:23ff:fe35:703b/64 Scope:Link

    and the 2.x layout:

        eth0: flags=4163<UP,BROADCAST,RUNNING,MULTICAST>  mtu 1500
                inet 10.10.10.9  netmask 255.255.254.0  broadcast 10.10.11.255
                inet6 fe80::21c:23ff:fe35:703b  prefixlen 64  scopeid 0x20<link>
                ether 00:1c:23:35:70:3b  txqueuelen 1000  (Ethernet)
    """

    platform_id = settings.PLATFORM_LINUX
    name_case_sensitive = False

    MAC_PATTERN = re.compile(
        r'(?:^|\s)(?:HWaddr|ether)\s+([0-9a-fA-F]{2}(?::[0-9a-fA-F]{2}){5})(?:\s|$)',
        re.IGNORECASE
    )
    INET_PATTERN = re.compile(
        r'^inet\s+(?:addr:\s*)?(?P<addr>\d+(?:\.\d+){3})'
        r'(?:.*?(?:Mask:|netmask\s+)(?P<mask>\d+(?:\.\d+){3}))?',
        re.IGNORECASE
    )

    def section_name(self, header: str, iface: str) -> str:
        return self._header_name(header).lower()

    def ipv4_prefix(self, mask: str) -> int:
        return prefix_from_dotted(mask)


class BSDGrammar(IfconfigGrammar):
    """Shared layout of the BSD-derived ifconfig outputs (hex netmask)."""

    MAC_PATTERN = re.compile(
        r'^ether\s+([0-9a-fA-F]{1,2}(?::[0-9a-fA-F]{1,2}){5})(?:\s|$)'
    )
    INET_PATTERN = re.compile(
        r'^inet\s+(?P<addr>\d+(?:\.\d+){3})'
        r'(?:.*?netmask\s+(?P<mask>0x[0-9a-fA-F]{1,8}))?'
    )

    def ipv4_prefix(self, mask: str) -> int:
        return prefix_from_hex(mask)


class DarwinGrammar(BSDGrammar):
    """
    macOS:

        en0: flags=8863<UP,BROADCAST,SMART,RUNNING,SIMPLEX,MULTICAST> mtu 1500
                ether 00:1c:23:35:70:3b
                inet6 fe80::1c:23ff:fe35:703b%en0 prefixlen 64 secured scopeid 0x4
                inet 192.168.1.5 netmask 0xffffff00 broadcast 192.168.1.255
    """

    platform_id = settings.PLATFORM_DARWIN


class FreeBSDGrammar(BSDGrammar):
    platform_id = settings.PLATFORM_FREEBSD

    INET_PATTERN = re.compile(
        r'^inet\s+(?P<addr>\d+(?:\.\d+){3})'
        r'(?:.*?netmask\s+(?P<mask>0x[0-9a-fA-F]{8}))?'
    )


class OpenBSDGrammar(FreeBSDGrammar):
    """OpenBSD reports the link-layer address as 'lladdr'."""

    platform_id = settings.PLATFORM_OPENBSD
    MAC_PATTERN = re.compile(
        r'^lladdr\s+([0-9a-fA-F]{1,2}(?::[0-9a-fA-F]{1,2}){5})(?:\s|$)'
    )


GRAMMARS = {
    grammar.platform_id: grammar
    for grammar in (LinuxGrammar, DarwinGrammar, FreeBSDGrammar, OpenBSDGrammar)
}


class InterfaceConfigParser:
    """
    Parses raw ifconfig text into an InterfaceConfig.

    Grammars are looked up by platform id; pass a different mapping to add
    or replace platforms.
    """

    def __init__(self, grammars: Dict[str, type] = None):
        self.grammars = dict(grammars or GRAMMARS)

    def grammar_for(self, platform_id: str) -> IfconfigGrammar:
        """
        Raises:
            UnsupportedPlatformError: No grammar for platform_id.
        """
        grammar = self.grammars.get(str(platform_id or "").lower())
        if grammar is None:
            raise UnsupportedPlatformError(platform_id)
        return grammar()

    def parse(self, platform_id: str, raw_text: str, iface_name: str) -> InterfaceConfig:
        """
        Parse the section for iface_name out of raw_text.

        Raises:
            InvalidInterfaceNameError: iface_name is not alphanumeric.
            UnsupportedPlatformError: Unknown platform_id.
            ParseError: No section for the interface, or a malformed address.
        """
        iface = sanitize_interface_name(iface_name)
        return self.grammar_for(platform_id).parse(raw_text, iface)
