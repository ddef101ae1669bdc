#!/usr/bin/env python3
"""
netident Demo Script

Shows the configuration of the local interfaces, discovers the local
identity with a whoami probe and resolves a target's MAC address.

Usage:
    python demo.py --list-interfaces
    sudo python demo.py -i eth0 --whoami
    sudo python demo.py -i eth0 -t 192.168.1.1
"""

import argparse
import logging
import subprocess
import sys

from config import settings
from config.settings import DiscoveryConfig
from core.errors import NetIdentError
from core.network_utils import get_interfaces
from discovery import ArpCache, ArpResolver, IdentityProber, PlatformAdapter


def print_banner():
    """Print welcome banner"""
    print("""
╔════════════════════════════════════════════════════════════════╗
║                          NETIDENT                              ║
║                                                                ║
║  ARP resolution, whoami and interface configuration discovery  ║
║                                                                ║
║  WARNING: Probes the network. Authorized networks only!        ║
╚════════════════════════════════════════════════════════════════╝
    """)


def list_interfaces(adapter: PlatformAdapter):
    """List available network interfaces"""
    print("\nAvailable Network Interfaces:")
    print("-" * 50)

    for iface in get_interfaces():
        print(f"  {iface.name}:")
        try:
            config = adapter.query_interface(iface.name)
        except (NetIdentError, OSError, subprocess.SubprocessError) as e:
            print(f"    (no ifconfig data: {e})")
            config = None
        if config is not None:
            print(f"    MAC:  {config.eth_saddr or 'N/A'}")
            print(f"    IPv4: {config.ipv4 or 'N/A'}")
            print(f"    IPv6: {config.ip6_saddr or 'N/A'}")
        if iface.gateway:
            print(f"    Gateway: {iface.gateway}")
        print()

    try:
        print(f"Default interface: {adapter.default_interface()}")
    except NetIdentError as e:
        print(f"Default interface: unknown ({e})")


def demo_whoami(prober: IdentityProber, interface: str, timeout: float):
    """Discover the local identity"""
    print("\n" + "=" * 50)
    print("  DEMO: whoami")
    print("=" * 50)

    me = prober.discover(iface=interface, timeout=timeout)
    print(f"  Interface: {me.iface}")
    print(f"  MAC:       {me.eth_saddr}")
    print(f"  IP:        {me.ip_saddr}")
    print(f"  Gateway MAC (probably): {me.eth_daddr}")
    print("✓ whoami demo complete")


def demo_arp(resolver: ArpResolver, interface: str, target: str,
             timeout: float, no_cache: bool):
    """Resolve a target's MAC address"""
    print("\n" + "=" * 50)
    print("  DEMO: ARP Resolution")
    print("=" * 50)

    if not no_cache:
        try:
            loaded = resolver.cache.refresh_from_system()
            print(f"Loaded {loaded} entries from the system ARP table")
        except (OSError, subprocess.SubprocessError) as e:
            print(f"Could not read the system ARP table: {e}")

    mac = resolver.resolve(target, iface=interface, timeout=timeout,
                           bypass_cache=no_cache)
    print(f"  {target} is at {mac}")
    print("✓ ARP demo complete")


def main():
    parser = argparse.ArgumentParser(
        description="netident Demo",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument("-i", "--interface",
                       help="Network interface to use")
    parser.add_argument("-t", "--target",
                       help="Target IP address to resolve")
    parser.add_argument("--list-interfaces", action="store_true",
                       help="List available interfaces")
    parser.add_argument("--whoami", action="store_true",
                       help="Discover the local MAC/IP identity")
    parser.add_argument("--no-cache", action="store_true",
                       help="Always send an ARP request")
    parser.add_argument("--timeout", type=float, default=settings.ARP_TIMEOUT,
                       help="Seconds to wait for replies")
    parser.add_argument("-v", "--verbose", action="store_true",
                       help="Debug logging")

    args = parser.parse_args()
    settings.configure_logging("DEBUG" if args.verbose else settings.LOG_LEVEL)

    config = DiscoveryConfig(interface=args.interface, arp_timeout=args.timeout)
    adapter = PlatformAdapter()
    prober = IdentityProber(adapter=adapter, config=config)
    resolver = ArpResolver(cache=ArpCache(), adapter=adapter,
                           prober=prober, config=config)

    if args.list_interfaces:
        list_interfaces(adapter)
        return 0

    if not args.whoami and not args.target:
        print("Error: Nothing to do")
        print("Usage: python demo.py --list-interfaces")
        print("       python demo.py -i <interface> --whoami")
        print("       python demo.py -i <interface> -t <target_ip>")
        return 2

    print_banner()

    try:
        if args.whoami:
            demo_whoami(prober, args.interface, settings.WHOAMI_TIMEOUT)
        if args.target:
            demo_arp(resolver, args.interface, args.target,
                     args.timeout, args.no_cache)
    except PermissionError:
        print("\n⚠️  Permission denied. Packet capture requires root privileges.")
        print("   Run with: sudo python demo.py ...")
        return 1
    except NetIdentError as e:
        logging.getLogger("demo").debug("Discovery failed", exc_info=True)
        print(f"\n✗ {e}")
        return 1
    except KeyboardInterrupt:
        print("\n\nDemo interrupted by user")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
