"""
Exception types raised by netident.

Every failure surfaces to the caller with a specific type; nothing is
retried internally.
"""


class NetIdentError(Exception):
    """Base class for all netident errors."""


class ParseError(NetIdentError, ValueError):
    """Interface status text is missing the interface or is malformed."""


class UnsupportedPlatformError(NetIdentError):
    """No ifconfig grammar exists for the platform id."""

    def __init__(self, platform_id: str):
        super().__init__(f"Unsupported platform: {platform_id!r}")
        self.platform_id = platform_id


class InvalidInterfaceNameError(NetIdentError, ValueError):
    """Interface name contains characters other than letters and digits."""

    def __init__(self, name):
        super().__init__(f"Invalid interface name: {name!r}")
        self.name = name


class InterfaceNotFoundError(NetIdentError):
    """The interface does not exist on this host."""

    def __init__(self, name: str):
        super().__init__(f"{name} interface does not exist")
        self.name = name


class NoRouteError(NetIdentError):
    """No usable interface or route could be determined."""


class ArpTimeoutError(NetIdentError, TimeoutError):
    """No ARP reply from the target within the timeout."""

    def __init__(self, target_ip: str, timeout: float):
        super().__init__(f"No ARP reply from {target_ip} within {timeout}s")
        self.target_ip = target_ip
        self.timeout = timeout


class IdentityProbeTimeoutError(NetIdentError, TimeoutError):
    """The whoami probe was not captured within the timeout."""


class IdentityMismatchError(NetIdentError):
    """A captured whoami frame carried a payload other than the one sent."""


class OperationCancelledError(NetIdentError):
    """The caller cancelled a resolve or probe before it completed."""


class CaptureError(NetIdentError, RuntimeError):
    """The capture library is unavailable or the capture failed to start."""
