"""
Packet building and parsing on top of Scapy.

Only what discovery needs: ARP requests out, and the few fields read back
from captured ARP replies and whoami UDP frames.
"""

from typing import Optional, Tuple

try:
    from scapy.all import Ether, ARP, IP, UDP, Raw
    SCAPY_AVAILABLE = True
except ImportError:
    SCAPY_AVAILABLE = False

from config import settings
from core.addresses import MacAddress


def _require_scapy():
    if not SCAPY_AVAILABLE:
        raise RuntimeError("Scapy is required for packet operations")


class ARPPacketBuilder:
    """
    Builder for ARP requests sent from a known source identity.
    """

    # ARP hardware types
    HWTYPE_ETHERNET = 1

    # ARP protocol types
    PTYPE_IPV4 = settings.ETH_TYPE_IPV4

    # Hardware and protocol address lengths
    HWLEN = 6  # MAC address length
    PLEN = 4   # IPv4 address length

    def __init__(self, src_mac, src_ip: str):
        """
        Initialize the packet builder.

        Args:
            src_mac: Source MAC address (string or MacAddress).
            src_ip: Source IP address.
        """
        self.src_mac = str(MacAddress(src_mac))
        self.src_ip = str(src_ip)

    def build_arp_request(self, target_ip: str,
                          target_mac: str = settings.ZERO_MAC) -> 'Ether':
        """
        Build a broadcast ARP request.

        Args:
            target_ip: IP address to resolve.
            target_mac: Target MAC (zeros for a normal request).

        Returns:
            Scapy Ether/ARP packet.
        """
        _require_scapy()

        return (
            Ether(src=self.src_mac, dst=settings.BROADCAST_MAC,
                  type=settings.ETH_TYPE_ARP) /
            ARP(
                hwtype=self.HWTYPE_ETHERNET,
                ptype=self.PTYPE_IPV4,
                hwlen=self.HWLEN,
                plen=self.PLEN,
                op=settings.ARP_REQUEST,
                hwsrc=self.src_mac,
                psrc=self.src_ip,
                hwdst=target_mac,
                pdst=str(target_ip)
            )
        )


def parse_frame(raw: bytes) -> 'Ether':
    """Decode a captured Ethernet frame."""
    _require_scapy()
    return Ether(raw)


def arp_sender(packet) -> Optional[Tuple[str, MacAddress]]:
    """
    Sender protocol and hardware address of an ARP packet.

    Returns:
        (sender_ip, sender_mac) or None if the packet carries no ARP.
    """
    if not packet.haslayer(ARP):
        return None
    arp = packet[ARP]
    return arp.psrc, MacAddress(arp.hwsrc)


def is_arp_reply_to(packet, our_mac) -> bool:
    """True if the packet is an ARP reply addressed to our_mac."""
    if not packet.haslayer(ARP):
        return False
    arp = packet[ARP]
    return arp.op == settings.ARP_REPLY and MacAddress(arp.hwdst) == our_mac


def udp_payload(packet) -> bytes:
    """Application payload of a UDP packet, b'' if there is none."""
    if not packet.haslayer(UDP) or not packet[UDP].haslayer(Raw):
        return b''
    return bytes(packet[UDP][Raw].load)


def frame_identity(packet) -> Tuple[MacAddress, MacAddress, str]:
    """
    Link and network source fields of a captured IPv4 frame.

    Returns:
        (ether source, ether destination, IPv4 source)
    """
    if not packet.haslayer(Ether) or not packet.haslayer(IP):
        raise ValueError("Frame is not Ethernet/IPv4")
    return (
        MacAddress(packet[Ether].src),
        MacAddress(packet[Ether].dst),
        packet[IP].src,
    )
