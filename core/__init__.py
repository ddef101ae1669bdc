"""
Core module for netident.

Includes:
- Address value types and netmask normalization
- Exception types
- Packet building/parsing with Scapy
- Live capture and frame injection
- Interface enumeration and system table access
"""

from .addresses import MacAddress
from .errors import (
    NetIdentError,
    ParseError,
    UnsupportedPlatformError,
    InvalidInterfaceNameError,
    InterfaceNotFoundError,
    NoRouteError,
    ArpTimeoutError,
    IdentityProbeTimeoutError,
    IdentityMismatchError,
    OperationCancelledError,
    CaptureError,
)
from .arp_packet import ARPPacketBuilder
from .capture import LiveCapture, open_capture, send_frame
from .network_utils import (
    get_interfaces,
    enumerate_interfaces,
    sanitize_interface_name,
)
