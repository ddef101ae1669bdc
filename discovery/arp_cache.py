"""
In-memory ARP cache.

Entries come from the system ARP table (`arp -na`) or from successful live
resolutions. One entry per IP, last observation wins, no expiry.
"""

import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from core import network_utils
from core.addresses import MacAddress


logger = logging.getLogger(__name__)

# ? (10.0.0.5) at aa:bb:cc:dd:ee:ff [ether] on eth0
ARP_LINE_PATTERN = re.compile(
    r'\?\s+\((?P<ip>\d+\.\d+\.\d+\.\d+)\)\s+at\s+'
    r'(?P<mac>[0-9a-fA-F]{1,2}(?::[0-9a-fA-F]{1,2}){5})'
    r'(?:\s+\[ether\])?\s+on\s+(?P<iface>[\w.\-]+)'
)


@dataclass(frozen=True)
class ArpCacheEntry:
    """One IP -> MAC binding and the interface it was seen on."""
    ip: str
    mac: MacAddress
    iface: str

    def to_dict(self) -> Dict:
        return {'ip': self.ip, 'mac': str(self.mac), 'iface': self.iface}


def parse_arp_table(text: str) -> Dict[str, ArpCacheEntry]:
    """
    Parse `arp -na` output.

    Lines that do not match the grammar (incomplete entries, headers,
    garbage) are skipped.

    Returns:
        Dict mapping IP to ArpCacheEntry.
    """
    table: Dict[str, ArpCacheEntry] = {}
    for line in (text or "").splitlines():
        match = ARP_LINE_PATTERN.search(line)
        if not match:
            if line.strip():
                logger.debug("Skipping ARP table line: %r", line)
            continue
        ip = match.group('ip')
        table[ip] = ArpCacheEntry(
            ip=ip,
            mac=MacAddress(match.group('mac')),
            iface=match.group('iface')
        )
    return table


class ArpCache:
    """
    IP -> (MAC, interface) table.

    A refresh from the system table merges into the cache: rows from the
    table overwrite entries for the same IP, and entries recorded from live
    resolutions that the table does not list are kept. Use clear() first
    for an exact copy of the system table.

    All operations hold an internal lock, so one cache can serve several
    resolutions running at once. Build one per resolver and pass it
    around; there is no shared global instance.
    """

    def __init__(self, source: Callable[[], str] = None):
        """
        Args:
            source: Returns the system ARP table text, defaults to `arp -na`.
        """
        self.source = source or network_utils.arp_cache_raw
        self._entries: Dict[str, ArpCacheEntry] = {}
        self._lock = threading.Lock()

    def lookup(self, ip) -> Optional[ArpCacheEntry]:
        with self._lock:
            return self._entries.get(str(ip))

    def record(self, entry: ArpCacheEntry):
        """Insert or overwrite the entry for entry.ip."""
        with self._lock:
            self._entries[entry.ip] = entry

    def refresh_from_system(self, source: Callable[[], str] = None) -> int:
        """
        Merge the system ARP table into the cache.

        Args:
            source: Overrides the table source for this call.

        Returns:
            Number of entries loaded.
        """
        table = parse_arp_table((source or self.source)())
        with self._lock:
            self._entries.update(table)
        logger.debug("Loaded %d ARP entries from the system table", len(table))
        return len(table)

    def entries(self) -> List[ArpCacheEntry]:
        with self._lock:
            return list(self._entries.values())

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def __contains__(self, ip):
        with self._lock:
            return str(ip) in self._entries
