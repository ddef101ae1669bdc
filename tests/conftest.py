"""
Pytest configuration and fixtures for netident tests.

Provides:
- Fake capture/injection collaborators (no root, no network)
- Frame builders for ARP and UDP traffic
- ifconfig fixture text and renderers for every supported platform
"""

import queue

import pytest
from scapy.all import ARP, IP, UDP, Ether, Raw

from config.settings import DiscoveryConfig
from discovery.platform_adapter import PlatformAdapter


OUR_MAC = "02:00:00:00:00:01"
OUR_IP = "10.0.0.2"
GATEWAY_MAC = "02:00:00:00:00:fe"
TARGET_IP = "10.0.0.5"
TARGET_MAC = "aa:bb:cc:dd:ee:ff"


# =============================================================================
# Capture / injection fakes
# =============================================================================

class FakeCapture:
    """Queue-backed stand-in for core.capture.LiveCapture."""

    def __init__(self, iface, bpf_filter, promisc):
        self.iface = iface
        self.bpf_filter = bpf_filter
        self.promisc = promisc
        self.listening = True
        self.closed = False
        self._frames = queue.Queue()

    def push(self, frame: bytes):
        self._frames.put(frame)

    def next_frame(self, block=True, timeout=None):
        try:
            return self._frames.get(block=block, timeout=timeout)
        except queue.Empty:
            return None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.listening = False
        self.closed = True
        return False


class FakeCaptureFactory:
    """Records every capture opened."""

    def __init__(self):
        self.captures = []

    def __call__(self, iface, bpf_filter, promisc=True):
        cap = FakeCapture(iface, bpf_filter, promisc)
        self.captures.append(cap)
        return cap

    @property
    def last(self) -> FakeCapture:
        return self.captures[-1]


class FakeInjector:
    """
    Records injected frames and answers them through the open capture.

    responder(frame_bytes) returns the frames to deliver back.
    """

    def __init__(self, factory: FakeCaptureFactory, responder=None):
        self.factory = factory
        self.responder = responder or (lambda frame: [])
        self.sent = []
        self.listening_at_send = []

    def __call__(self, iface, frame):
        cap = self.factory.last
        self.listening_at_send.append(cap.listening)
        self.sent.append((iface, frame))
        for reply in self.responder(frame):
            cap.push(reply)


# =============================================================================
# Frame builders
# =============================================================================

def arp_frame(sender_ip, sender_mac, target_ip, target_mac, op=2) -> bytes:
    return bytes(
        Ether(src=sender_mac, dst=target_mac) /
        ARP(op=op, hwsrc=sender_mac, psrc=sender_ip,
            hwdst=target_mac, pdst=target_ip)
    )


def udp_frame(payload: bytes, dst_ip: str, dst_port: int,
              eth_src=OUR_MAC, eth_dst=GATEWAY_MAC, ip_src=OUR_IP) -> bytes:
    return bytes(
        Ether(src=eth_src, dst=eth_dst) /
        IP(src=ip_src, dst=dst_ip) /
        UDP(sport=40000, dport=dst_port) /
        Raw(load=payload)
    )


# =============================================================================
# ifconfig fixtures
# =============================================================================

LINUX_LEGACY_IFCONFIG = """\
eth0      Link encap:Ethernet  HWaddr 00:1C:23:35:70:3B
          inet addr:10.10.10.9  Bcast:10.10.11.255  Mask:255.255.254.0
          inet6 addr: fe80::21c:23ff:fe35:703b/64 Scope:Link
          UP BROADCAST RUNNING MULTICAST  MTU:1500  Metric:1
          RX packets:2135 errors:0 dropped:0 overruns:0 frame:0
          TX packets:1489 errors:0 dropped:0 overruns:0 carrier:0
          collisions:0 txqueuelen:1000
          RX bytes:1517409 (1.5 MB)  TX bytes:226584 (226.5 KB)
          Interrupt:16

lo        Link encap:Local Loopback
          inet addr:127.0.0.1  Mask:255.0.0.0
          inet6 addr: ::1/128 Scope:Host
          UP LOOPBACK RUNNING  MTU:16436  Metric:1
"""

LINUX_MODERN_IFCONFIG = """\
enp3s0: flags=4163<UP,BROADCAST,RUNNING,MULTICAST>  mtu 1500
        inet 192.168.1.20  netmask 255.255.255.0  broadcast 192.168.1.255
        inet6 fe80::a00:27ff:fe4e:66a1  prefixlen 64  scopeid 0x20<link>
        ether 08:00:27:4e:66:a1  txqueuelen 1000  (Ethernet)
        RX packets 12345  bytes 9876543 (9.4 MiB)
        TX packets 2345  bytes 345678 (337.5 KiB)

lo: flags=73<UP,LOOPBACK,RUNNING>  mtu 65536
        inet 127.0.0.1  netmask 255.0.0.0
        inet6 ::1  prefixlen 128  scopeid 0x10<host>
        loop  txqueuelen 1000  (Local Loopback)
"""

DARWIN_IFCONFIG = """\
en0: flags=8863<UP,BROADCAST,SMART,RUNNING,SIMPLEX,MULTICAST> mtu 1500
\toptions=400<CHANNEL_IO>
\tether 3c:22:fb:12:34:56
\tinet6 fe80::1c8a:5b2f:9d3e:1a2b%en0 prefixlen 64 secured scopeid 0x6
\tinet 192.168.1.42 netmask 0xffffff00 broadcast 192.168.1.255
\tnd6 options=201<PERFORMNUD,DAD>
\tmedia: autoselect
\tstatus: active
"""

FREEBSD_IFCONFIG = """\
em0: flags=8843<UP,BROADCAST,RUNNING,SIMPLEX,MULTICAST> metric 0 mtu 1500
\toptions=481009b<RXCSUM,TXCSUM,VLAN_MTU,VLAN_HWTAGGING,VLAN_HWCSUM,LRO>
\tether 08:00:27:aa:bb:cc
\tinet 10.0.2.15 netmask 0xffffff00 broadcast 10.0.2.255
\tinet6 fe80::a00:27ff:feaa:bbcc%em0 prefixlen 64 scopeid 0x1
\tmedia: Ethernet autoselect (1000baseT <full-duplex>)
\tstatus: active
\tnd6 options=23<PERFORMNUD,ACCEPT_RTADV,AUTO_LINKLOCAL>
"""

OPENBSD_IFCONFIG = """\
em0: flags=8843<UP,BROADCAST,RUNNING,SIMPLEX,MULTICAST> mtu 1500
\tlladdr 52:54:00:12:34:56
\tindex 1 priority 0 llprio 3
\tgroups: egress
\tmedia: Ethernet autoselect (1000baseT full-duplex)
\tstatus: active
\tinet6 fe80::5054:ff:fe12:3456%em0 prefixlen 64 scopeid 0x1
\tinet 10.0.2.16 netmask 0xffffff00 broadcast 10.0.2.255
"""


def _hex_mask(ipv4) -> str:
    return f"0x{int(ipv4.netmask):08x}"


def render_linux_legacy(config) -> str:
    lines = [f"{config.name}      Link encap:Ethernet"
             + (f"  HWaddr {config.eth_saddr.upper()}  " if config.eth_mac else "")]
    if config.ipv4:
        lines.append(f"          inet addr:{config.ipv4.ip}  "
                     f"Bcast:{config.ipv4.network.broadcast_address}  "
                     f"Mask:{config.ipv4.netmask}")
    if config.ipv6:
        lines.append(f"          inet6 addr: {config.ipv6} Scope:Global")
    lines.append("          UP BROADCAST RUNNING MULTICAST  MTU:1500  Metric:1")
    return "\n".join(lines) + "\n"


def render_linux_modern(config) -> str:
    lines = [f"{config.name}: flags=4163<UP,BROADCAST,RUNNING,MULTICAST>  mtu 1500"]
    if config.ipv4:
        lines.append(f"        inet {config.ipv4.ip}  netmask {config.ipv4.netmask}  "
                     f"broadcast {config.ipv4.network.broadcast_address}")
    if config.ipv6:
        lines.append(f"        inet6 {config.ipv6.ip}  prefixlen "
                     f"{config.ipv6.network.prefixlen}  scopeid 0x0<global>")
    if config.eth_mac:
        lines.append(f"        ether {config.eth_saddr}  txqueuelen 1000  (Ethernet)")
    return "\n".join(lines) + "\n"


def _render_bsd(config, mac_label: str) -> str:
    lines = [f"{config.name}: flags=8843<UP,BROADCAST,RUNNING,SIMPLEX,MULTICAST> mtu 1500"]
    if config.eth_mac:
        lines.append(f"\t{mac_label} {config.eth_saddr}")
    if config.ipv6:
        lines.append(f"\tinet6 {config.ipv6.ip}%{config.name} prefixlen "
                     f"{config.ipv6.network.prefixlen} scopeid 0x1")
    if config.ipv4:
        lines.append(f"\tinet {config.ipv4.ip} netmask {_hex_mask(config.ipv4)} "
                     f"broadcast {config.ipv4.network.broadcast_address}")
    lines.append("\tstatus: active")
    return "\n".join(lines) + "\n"


def render_darwin(config) -> str:
    return _render_bsd(config, "ether")


def render_freebsd(config) -> str:
    return _render_bsd(config, "ether")


def render_openbsd(config) -> str:
    return _render_bsd(config, "lladdr")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def capture_factory():
    return FakeCaptureFactory()


@pytest.fixture
def fast_config():
    return DiscoveryConfig(interface=None, arp_timeout=0.5,
                           whoami_timeout=0.5, poll_interval=0.05)


@pytest.fixture
def status_calls():
    return []


@pytest.fixture
def adapter(status_calls):
    """Linux adapter whose ifconfig and enumeration are canned."""

    def status_source(iface):
        status_calls.append(iface)
        return (
            f"{iface}      Link encap:Ethernet  HWaddr {OUR_MAC}\n"
            f"          inet addr:{OUR_IP}  Bcast:10.0.0.255  Mask:255.255.255.0\n"
        )

    return PlatformAdapter(
        platform_id="linux",
        status_source=status_source,
        enumerator=lambda: [("eth0", 2, OUR_IP), ("lo", 2, "127.0.0.1")],
        ip_probe=lambda: OUR_IP,
        capture_device=lambda: None
    )
