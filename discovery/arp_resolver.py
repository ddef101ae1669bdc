"""
ARP resolution: IP -> MAC, from the cache or by asking the network.

WARNING: Sending ARP requests with a forged source identity on a shared
network will confuse neighbours. Use on networks you are authorized to test.
"""

import ipaddress
import logging
import subprocess
import threading
import time
from typing import Optional, Tuple

from config.settings import DiscoveryConfig
from core import capture
from core.addresses import MacAddress
from core.arp_packet import ARPPacketBuilder, arp_sender, is_arp_reply_to, parse_frame
from core.errors import (
    ArpTimeoutError, InterfaceNotFoundError, OperationCancelledError, ParseError
)
from core.network_utils import sanitize_interface_name
from discovery.arp_cache import ArpCache, ArpCacheEntry
from discovery.platform_adapter import PlatformAdapter
from discovery.whoami import IdentityProber


logger = logging.getLogger(__name__)


class ArpResolver:
    """
    Resolves IPv4 addresses to MAC addresses.

    A cache hit is returned straight away; on a miss the system ARP table
    is read once and the cache checked again. Otherwise a capture for the
    target's ARP traffic is opened, one broadcast request is injected and the
    capture is polled until a frame from the target arrives or the timeout
    passes. Successful answers are recorded in the cache.

    Usage:
        resolver = ArpResolver(cache=ArpCache())
        mac = resolver.resolve("192.168.1.1", iface="eth0")
    """

    def __init__(
        self,
        cache: Optional[ArpCache] = None,
        adapter: Optional[PlatformAdapter] = None,
        prober: Optional[IdentityProber] = None,
        config: Optional[DiscoveryConfig] = None,
        capture_factory=None,
        injector=None
    ):
        """
        Args:
            cache: Cache to consult and update.
            adapter: Supplies the default interface and its configuration.
            prober: Fallback source of our own MAC/IP when the interface
                configuration lacks them.
            config: Timeout, polling and matching defaults.
            capture_factory: (iface, bpf_filter, promisc) -> started capture
                usable as a context manager.
            injector: (iface, frame_bytes) -> None, sends one frame.
        """
        self.cache = cache if cache is not None else ArpCache()
        self.adapter = adapter or PlatformAdapter()
        self.config = config or DiscoveryConfig()
        self.prober = prober or IdentityProber(adapter=self.adapter, config=self.config)
        self.capture_factory = capture_factory or capture.open_capture
        self.injector = injector or capture.send_frame

    def resolve(
        self,
        target_ip: str,
        iface: Optional[str] = None,
        eth_saddr=None,
        ip_saddr: Optional[str] = None,
        timeout: Optional[float] = None,
        bypass_cache: bool = False,
        strict: Optional[bool] = None,
        cancel: Optional[threading.Event] = None
    ) -> MacAddress:
        """
        MAC address of target_ip.

        Args:
            target_ip: Dotted-quad IPv4 address.
            iface: Interface to ask on, defaults to the default interface.
            eth_saddr: Our MAC, defaults to the interface's.
            ip_saddr: Our IP, defaults to the interface's.
            timeout: Seconds to wait for a reply.
            bypass_cache: Skip the cache and the system ARP table, always
                send a request.
            strict: Also require the reply to be an ARP reply addressed to
                us. By default any frame whose sender IP is the target counts.
            cancel: Set to abandon the wait early.

        Raises:
            ArpTimeoutError: No reply within timeout.
            OperationCancelledError: cancel was set.
            InvalidInterfaceNameError: iface is not alphanumeric.
            NoRouteError, CaptureError, UnsupportedPlatformError
        """
        target_ip = str(ipaddress.IPv4Address(str(target_ip)))

        if not bypass_cache:
            entry = self._cached(target_ip)
            if entry is not None:
                logger.debug("ARP cache hit for %s: %s", target_ip, entry.mac)
                return entry.mac

        iface = sanitize_interface_name(
            iface or self.config.interface or self.adapter.default_interface()
        )
        timeout = self.config.arp_timeout if timeout is None else timeout
        strict = self.config.strict_match if strict is None else strict
        src_mac, src_ip = self._source_identity(iface, eth_saddr, ip_saddr, cancel)

        request = ARPPacketBuilder(src_mac, src_ip).build_arp_request(target_ip)
        bpf_filter = f"arp src {target_ip} and ether dst {src_mac}"

        with self.capture_factory(iface, bpf_filter, self.config.promiscuous) as cap:
            self.injector(iface, bytes(request))
            logger.debug("Sent ARP request for %s on %s", target_ip, iface)
            mac = self._await_reply(cap, target_ip, src_mac, timeout, strict, cancel)

        self.cache.record(ArpCacheEntry(ip=target_ip, mac=mac, iface=iface))
        logger.info("Resolved %s to %s on %s", target_ip, mac, iface)
        return mac

    def _cached(self, target_ip: str) -> Optional[ArpCacheEntry]:
        """Cache entry for target_ip, re-reading the system ARP table on a miss."""
        entry = self.cache.lookup(target_ip)
        if entry is not None:
            return entry
        try:
            self.cache.refresh_from_system()
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("Could not read the system ARP table: %s", e)
            return None
        return self.cache.lookup(target_ip)

    def _source_identity(self, iface: str, eth_saddr, ip_saddr,
                         cancel) -> Tuple[MacAddress, str]:
        """Fill in our MAC/IP from the interface config, then from whoami."""
        if not (eth_saddr and ip_saddr):
            try:
                config = self.adapter.query_interface(iface)
                eth_saddr = eth_saddr or config.eth_mac
                ip_saddr = ip_saddr or config.ip_saddr
            except (ParseError, InterfaceNotFoundError,
                    OSError, subprocess.SubprocessError) as e:
                logger.debug("No usable ifconfig data for %s (%s), probing", iface, e)

        if not (eth_saddr and ip_saddr):
            me = self.prober.discover(iface=iface, cancel=cancel)
            eth_saddr = eth_saddr or me.eth_src
            ip_saddr = ip_saddr or me.ip_saddr

        return MacAddress(eth_saddr), str(ip_saddr)

    def _await_reply(self, cap, target_ip: str, src_mac: MacAddress,
                     timeout: float, strict: bool,
                     cancel: Optional[threading.Event]) -> MacAddress:
        deadline = time.monotonic() + timeout

        while True:
            if cancel is not None and cancel.is_set():
                raise OperationCancelledError(f"ARP resolution of {target_ip} cancelled")

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ArpTimeoutError(target_ip, timeout)

            raw = cap.next_frame(timeout=min(self.config.poll_interval, remaining))
            if raw is None:
                continue

            packet = parse_frame(raw)
            sender = arp_sender(packet)
            if sender is None:
                continue

            sender_ip, sender_mac = sender
            if sender_ip != target_ip:
                logger.debug("Ignoring ARP from %s while resolving %s", sender_ip, target_ip)
                continue
            if strict and not is_arp_reply_to(packet, src_mac):
                logger.debug("Ignoring ARP from %s not addressed to %s", sender_ip, src_mac)
                continue
            return sender_mac
