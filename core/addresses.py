"""
Address value types and netmask normalization.

IPv4/IPv6 addresses use the standard library ipaddress types; an address
with its prefix is an IPv4Interface/IPv6Interface. MAC addresses get a small
value type with a canonical string form and a packed 6-byte form.
"""

import ipaddress
import re
from typing import Union

_MAC_SEPARATORS = re.compile(r'[:-]')
_MAC_OCTET = re.compile(r'^[0-9a-fA-F]{1,2}$')


def mac_to_bytes(mac: str) -> bytes:
    """
    Convert a MAC address string to its packed form.

    Accepts ':' or '-' separators and one- or two-digit octets
    (macOS prints '0:1c:23:35:70:3b').

    Raises:
        ValueError: If the string is not a MAC address.
    """
    octets = _MAC_SEPARATORS.split(mac.strip())
    if len(octets) != 6 or not all(_MAC_OCTET.match(o) for o in octets):
        raise ValueError(f"Invalid MAC address: {mac!r}")
    return bytes(int(o, 16) for o in octets)


def bytes_to_mac(data: bytes) -> str:
    """Convert packed bytes to a MAC address string."""
    return ':'.join(f'{b:02x}' for b in data)


class MacAddress:
    """
    A MAC address.

    str() gives the canonical lowercase colon-separated form, .packed the
    6-byte form. Equality and hashing use the packed form, so comparing with
    an equivalent string in another notation is true.
    """

    __slots__ = ('_packed',)

    def __init__(self, value: Union[str, bytes, 'MacAddress']):
        if isinstance(value, MacAddress):
            packed = value.packed
        elif isinstance(value, (bytes, bytearray)):
            if len(value) != 6:
                raise ValueError(f"Packed MAC must be 6 bytes, got {len(value)}")
            packed = bytes(value)
        elif isinstance(value, str):
            packed = mac_to_bytes(value)
        else:
            raise TypeError(f"Cannot build a MAC address from {type(value).__name__}")
        self._packed = packed

    @property
    def packed(self) -> bytes:
        return self._packed

    @property
    def is_broadcast(self) -> bool:
        return self._packed == b'\xff' * 6

    @property
    def is_zero(self) -> bool:
        return self._packed == b'\x00' * 6

    def __str__(self):
        return bytes_to_mac(self._packed)

    def __repr__(self):
        return f"MacAddress({str(self)!r})"

    def __eq__(self, other):
        if isinstance(other, MacAddress):
            return self._packed == other._packed
        if isinstance(other, (str, bytes, bytearray)):
            try:
                return self._packed == MacAddress(other)._packed
            except ValueError:
                return False
        return NotImplemented

    def __hash__(self):
        return hash(self._packed)


def prefix_from_int(mask: int, bits: int = 32) -> int:
    """
    Convert an integer netmask to a prefix length.

    Raises:
        ValueError: If the mask is out of range or not contiguous.
    """
    full = (1 << bits) - 1
    if mask < 0 or mask > full:
        raise ValueError(f"Netmask out of range: {mask:#x}")
    prefix = bin(mask).count('1')
    if mask != full ^ ((1 << (bits - prefix)) - 1):
        raise ValueError(f"Netmask is not contiguous: {mask:#x}")
    return prefix


def prefix_from_dotted(mask: str) -> int:
    """Prefix length of a dotted-quad netmask ('255.255.254.0' -> 23)."""
    try:
        value = int(ipaddress.IPv4Address(mask))
    except ipaddress.AddressValueError as e:
        raise ValueError(str(e)) from e
    return prefix_from_int(value)


def prefix_from_hex(mask: str) -> int:
    """Prefix length of a hex netmask ('0xffffff00' -> 24)."""
    return prefix_from_int(int(mask, 16))


def ipv4_interface(address: str, prefix: int = 32) -> ipaddress.IPv4Interface:
    """IPv4 address with prefix."""
    if not 0 <= prefix <= 32:
        raise ValueError(f"IPv4 prefix out of range: {prefix}")
    return ipaddress.IPv4Interface(f"{address}/{prefix}")


def ipv6_interface(address: str, prefix: int = 128) -> ipaddress.IPv6Interface:
    """IPv6 address with prefix; a '%zone' suffix is dropped."""
    if not 0 <= prefix <= 128:
        raise ValueError(f"IPv6 prefix out of range: {prefix}")
    return ipaddress.IPv6Interface(f"{address.split('%', 1)[0]}/{prefix}")
