"""
whoami: discover the local MAC and IPv4 address on an interface.

A UDP datagram with a unique payload is sent towards an address that has to
leave through the default gateway, and captured on its way out. The captured
frame carries the host's real source MAC, source IP and the gateway-facing
destination MAC. This is noisy and needs capture privileges.
"""

import ipaddress
import logging
import random
import socket
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from config import settings
from config.settings import DiscoveryConfig
from core import capture
from core.addresses import MacAddress
from core.arp_packet import frame_identity, parse_frame, udp_payload
from core.errors import (
    IdentityMismatchError, IdentityProbeTimeoutError,
    NoRouteError, OperationCancelledError
)
from core.network_utils import rand_port, rand_routable_daddr, sanitize_interface_name
from discovery.platform_adapter import PlatformAdapter


logger = logging.getLogger(__name__)


class ProbeState(Enum):
    """Lifecycle of one whoami probe."""
    IDLE = "idle"
    LISTENING = "listening"
    PROBE_SENT = "probe_sent"
    DONE = "done"
    MISMATCHED = "mismatched"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ProbeState.DONE, ProbeState.MISMATCHED,
                        ProbeState.TIMED_OUT, ProbeState.CANCELLED)


@dataclass(frozen=True)
class ProbeResult:
    """Local identity as seen in the captured probe frame."""
    iface: str
    eth_src: MacAddress
    eth_dst: MacAddress
    ip_src: ipaddress.IPv4Address

    @property
    def eth_saddr(self) -> str:
        return str(self.eth_src)

    @property
    def eth_daddr(self) -> str:
        """Destination MAC of the probe, usually the gateway's."""
        return str(self.eth_dst)

    @property
    def ip_saddr(self) -> str:
        return str(self.ip_src)

    @property
    def ip_src_bin(self) -> bytes:
        return self.ip_src.packed

    def to_dict(self) -> Dict:
        return {
            'iface': self.iface,
            'eth_saddr': self.eth_saddr,
            'eth_daddr': self.eth_daddr,
            'ip_saddr': self.ip_saddr,
        }


def make_probe_payload(tag: str = settings.WHOAMI_TAG) -> bytes:
    """Tag, timestamp and random nonce; unique per probe."""
    stamp = int(time.time()) + random.randint(1, 0xffffff)
    return f"{tag} {stamp} {random.getrandbits(64):016x}".encode()


def send_udp_probe(dst_host: str, dst_port: int, payload: bytes):
    """Send one datagram through the normal socket stack."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.sendto(payload, (dst_host, dst_port))


def is_loopback(iface: str) -> bool:
    return str(iface).startswith("lo")


class IdentityProber:
    """
    Finds the local link and IP identity on an interface.

    Usage:
        prober = IdentityProber()
        me = prober.discover(iface="eth0")
        print(me.eth_saddr, me.ip_saddr, me.eth_daddr)

    state holds the ProbeState of the most recent discover() call; a prober
    runs one probe at a time.
    """

    def __init__(
        self,
        adapter: Optional[PlatformAdapter] = None,
        config: Optional[DiscoveryConfig] = None,
        capture_factory=None,
        sender=None
    ):
        """
        Args:
            adapter: Supplies the default interface.
            config: Timeout and polling defaults.
            capture_factory: (iface, bpf_filter, promisc) -> started capture
                usable as a context manager.
            sender: (dst_host, dst_port, payload) -> None, sends the probe.
        """
        self.adapter = adapter or PlatformAdapter()
        self.config = config or DiscoveryConfig()
        self.capture_factory = capture_factory or capture.open_capture
        self.sender = sender or send_udp_probe
        self.state = ProbeState.IDLE

    def _transition(self, state: ProbeState):
        logger.debug("whoami: %s -> %s", self.state.value, state.value)
        self.state = state

    def discover(
        self,
        iface: Optional[str] = None,
        target_ip: Optional[str] = None,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None
    ) -> ProbeResult:
        """
        Send a probe and read the local identity back off the wire.

        Args:
            iface: Interface to listen on. The OS picks the egress interface
                for the probe, so target_ip must route through it.
            target_ip: Probe destination, a random 177/8 address by default.
                Ignored on loopback interfaces, which always use 127.0.0.1.
            timeout: Seconds to wait for the probe frame.
            cancel: Set to abandon the wait early.

        Raises:
            IdentityProbeTimeoutError: Probe not captured in time.
            IdentityMismatchError: A captured frame carried another payload.
            InvalidInterfaceNameError: iface is not alphanumeric.
            NoRouteError: No interface, or the probe could not be sent.
            OperationCancelledError: cancel was set.
            CaptureError: The capture could not be started.
        """
        self.state = ProbeState.IDLE
        iface = sanitize_interface_name(
            iface or self.config.interface or self.adapter.default_interface()
        )
        timeout = self.config.whoami_timeout if timeout is None else timeout

        if is_loopback(iface):
            dst_host = settings.LOOPBACK_IP
        else:
            dst_host = str(target_ip) if target_ip else rand_routable_daddr()
        dst_port = rand_port()
        payload = make_probe_payload()
        bpf_filter = f"udp and dst host {dst_host} and dst port {dst_port}"

        with self.capture_factory(iface, bpf_filter, False) as cap:
            self._transition(ProbeState.LISTENING)
            try:
                self.sender(dst_host, dst_port, payload)
            except OSError as e:
                raise NoRouteError(f"Cannot send whoami probe to {dst_host}: {e}") from e
            self._transition(ProbeState.PROBE_SENT)
            return self._await_probe(cap, iface, payload, timeout, cancel)

    def _await_probe(self, cap, iface: str, payload: bytes,
                     timeout: float, cancel: Optional[threading.Event]) -> ProbeResult:
        deadline = time.monotonic() + timeout

        while True:
            if cancel is not None and cancel.is_set():
                self._transition(ProbeState.CANCELLED)
                raise OperationCancelledError("whoami probe cancelled")

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._transition(ProbeState.TIMED_OUT)
                raise IdentityProbeTimeoutError(
                    f"Didn't receive the whoami packet on {iface} within "
                    f"{timeout}s, can't automatically configure"
                )

            raw = cap.next_frame(timeout=min(self.config.poll_interval, remaining))
            if raw is None:
                continue

            packet = parse_frame(raw)
            if udp_payload(packet) != payload:
                self._transition(ProbeState.MISMATCHED)
                logger.warning("whoami frame on %s does not match the probe sent", iface)
                raise IdentityMismatchError(
                    "whoami packet doesn't match sent data. Something fishy's going on."
                )

            eth_src, eth_dst, ip_src = frame_identity(packet)
            self._transition(ProbeState.DONE)
            result = ProbeResult(
                iface=iface,
                eth_src=eth_src,
                eth_dst=eth_dst,
                ip_src=ipaddress.IPv4Address(ip_src)
            )
            logger.info("whoami on %s: %s", iface, result.to_dict())
            return result
