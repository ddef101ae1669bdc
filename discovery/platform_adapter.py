"""
Platform glue: which ifconfig grammar applies here, how to get the raw
status text, and which interface is the default one.
"""

import logging
import socket
from typing import Callable, Iterable, Optional, Tuple

from config import settings
from core import capture, network_utils
from core.errors import NoRouteError
from core.network_utils import sanitize_interface_name
from discovery.ifconfig_parser import InterfaceConfig, InterfaceConfigParser


logger = logging.getLogger(__name__)


class PlatformAdapter:
    """
    Interface queries for the running operating system.

    All OS access goes through the collaborators passed in, defaulting to
    the real ones:

        status_source(iface) -> ifconfig text
        enumerator() -> [(name, family, address), ...]
        ip_probe() -> local IPv4 address used for external traffic, or None
        capture_device() -> capture library's default interface, or None
    """

    def __init__(
        self,
        platform_id: Optional[str] = None,
        status_source: Callable[[str], str] = None,
        enumerator: Callable[[], Iterable[Tuple[str, int, str]]] = None,
        ip_probe: Callable[[], Optional[str]] = None,
        capture_device: Callable[[], Optional[str]] = None,
        parser: Optional[InterfaceConfigParser] = None
    ):
        self.platform_id = platform_id or settings.get_platform()
        self.status_source = status_source or network_utils.ifconfig_data_string
        self.enumerator = enumerator or network_utils.enumerate_interfaces
        self.ip_probe = ip_probe or network_utils.default_ip
        self.capture_device = capture_device or capture.default_capture_device
        self.parser = parser or InterfaceConfigParser()

    def current_platform(self) -> str:
        return self.platform_id

    def query_interface(self, iface: Optional[str] = None) -> InterfaceConfig:
        """
        Canonical configuration of an interface.

        The name is validated and the platform checked before any command
        runs.

        Args:
            iface: Interface name, defaults to default_interface().

        Raises:
            InvalidInterfaceNameError, UnsupportedPlatformError, ParseError,
            InterfaceNotFoundError, NoRouteError
        """
        if iface is None:
            iface = self.default_interface()
        iface = sanitize_interface_name(iface)
        self.parser.grammar_for(self.platform_id)

        raw_text = self.status_source(iface)
        config = self.parser.parse(self.platform_id, raw_text, iface)
        logger.debug("Interface %s: %s", iface, config.to_dict())
        return config

    def default_ip(self) -> Optional[str]:
        return self.ip_probe()

    def default_interface(self) -> str:
        """
        Interface that carries traffic to external addresses.

        Matches the local address of the default route against the
        enumerated interfaces, then falls back to the capture library's
        default device.

        Raises:
            NoRouteError: Neither way found an interface.
        """
        ip = self.default_ip()
        if ip:
            for name, family, address in self.enumerator():
                if family == socket.AF_INET and address == ip:
                    logger.debug("Default interface %s (owns %s)", name, ip)
                    return name
            logger.debug("No interface owns %s", ip)

        device = self.capture_device()
        if device:
            logger.debug("Default interface %s (capture library default)", device)
            return device

        raise NoRouteError("Could not determine a default interface")
