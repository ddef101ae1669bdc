"""
Configuration settings for netident.
"""

import logging
import os
import platform

# =============================================================================
# Platform Detection
# =============================================================================
PLATFORM = platform.system().lower()
IS_WINDOWS = PLATFORM == "windows"
IS_LINUX = PLATFORM == "linux"
IS_MACOS = PLATFORM == "darwin"
IS_FREEBSD = PLATFORM == "freebsd"
IS_OPENBSD = PLATFORM == "openbsd"

# Platform ids with an ifconfig grammar
PLATFORM_LINUX = "linux"
PLATFORM_DARWIN = "darwin"
PLATFORM_FREEBSD = "freebsd"
PLATFORM_OPENBSD = "openbsd"
SUPPORTED_PLATFORMS = (
    PLATFORM_LINUX,
    PLATFORM_DARWIN,
    PLATFORM_FREEBSD,
    PLATFORM_OPENBSD,
)

# =============================================================================
# Network Settings
# =============================================================================
# Interface override (IFACE environment variable), auto-detected if None
INTERFACE = os.environ.get("IFACE") or None

# Broadcast and "unknown" MAC addresses
BROADCAST_MAC = "ff:ff:ff:ff:ff:ff"
ZERO_MAC = "00:00:00:00:00:00"

# ARP operation codes
ARP_REQUEST = 1
ARP_REPLY = 2

# Ethernet types
ETH_TYPE_ARP = 0x0806
ETH_TYPE_IPV4 = 0x0800

# Loopback destination for whoami probes on lo* interfaces
LOOPBACK_IP = "127.0.0.1"

# =============================================================================
# ARP Resolution Settings
# =============================================================================
ARP_TIMEOUT = 3.0          # Seconds to wait for an ARP reply
ARP_POLL_INTERVAL = 0.1    # Check for a reply ten times per second
ARP_STRICT_MATCH = False   # Only require the sender IP to match

# =============================================================================
# Whoami Probe Settings
# =============================================================================
WHOAMI_TIMEOUT = 1.0
WHOAMI_TAG = "netident whoami? packet"

# 177/8 is unassigned, so probes towards it leave through the default
# gateway without reaching a real host.
ROUTABLE_PROBE_BASE = 2969567232  # 177.0.0.0
ROUTABLE_PROBE_SIZE = 2 ** 24

# Random destination port range for probes
PROBE_PORT_MIN = 1024
PROBE_PORT_MAX = 0xffff - 1

# =============================================================================
# Capture Settings
# =============================================================================
# Seconds to wait for the sniffer thread to report it is listening
CAPTURE_START_TIMEOUT = 2.0

# Frames buffered between the sniffer thread and the reader
CAPTURE_QUEUE_SIZE = 1024

# =============================================================================
# System Commands
# =============================================================================
IFCONFIG_COMMAND = "ifconfig"
ARP_TABLE_COMMAND = ["arp", "-na"]
COMMAND_TIMEOUT = 5.0

# =============================================================================
# Logging Settings
# =============================================================================
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# =============================================================================
# Helper Functions
# =============================================================================

def get_platform() -> str:
    """
    Get the current platform name.

    Returns:
        Platform name: 'linux', 'darwin', 'freebsd', 'openbsd', 'windows', ...
    """
    return PLATFORM


def configure_logging(level: str = None):
    """
    Configure root logging with the project format.

    Args:
        level: Log level name, defaults to LOG_LEVEL.
    """
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


class DiscoveryConfig:
    """
    Configuration class for discovery operations.

    Bundles the defaults used by the ARP resolver and the whoami prober.
    """

    def __init__(
        self,
        interface: str = None,
        arp_timeout: float = ARP_TIMEOUT,
        whoami_timeout: float = WHOAMI_TIMEOUT,
        poll_interval: float = ARP_POLL_INTERVAL,
        promiscuous: bool = True,
        strict_match: bool = ARP_STRICT_MATCH
    ):
        """
        Initialize discovery configuration.

        Args:
            interface: Network interface to use (auto-detected if None).
            arp_timeout: Seconds to wait for an ARP reply.
            whoami_timeout: Seconds to wait for the whoami probe.
            poll_interval: Capture polling interval in seconds.
            promiscuous: Open ARP captures in promiscuous mode.
            strict_match: Require ARP replies addressed to us.
        """
        self.interface = interface or INTERFACE
        self.arp_timeout = arp_timeout
        self.whoami_timeout = whoami_timeout
        self.poll_interval = poll_interval
        self.promiscuous = promiscuous
        self.strict_match = strict_match

    @property
    def is_valid(self) -> bool:
        """Check if the configuration is valid."""
        return (
            self.arp_timeout > 0
            and self.whoami_timeout > 0
            and 0 < self.poll_interval <= self.arp_timeout
        )

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            'interface': self.interface,
            'arp_timeout': self.arp_timeout,
            'whoami_timeout': self.whoami_timeout,
            'poll_interval': self.poll_interval,
            'promiscuous': self.promiscuous,
            'strict_match': self.strict_match
        }
