"""
Live capture and frame injection on top of Scapy.

A LiveCapture runs Scapy's AsyncSniffer in its own thread and hands frames
to the reader through a queue. start() returns only once the sniffer socket
is open, so a probe sent afterwards cannot be missed.
"""

import logging
import queue
import threading
from typing import Optional

try:
    from scapy.all import AsyncSniffer, Ether, sendp, conf
    from scapy.error import Scapy_Exception
    SCAPY_AVAILABLE = True
except ImportError:
    SCAPY_AVAILABLE = False

from config import settings
from core.errors import CaptureError


logger = logging.getLogger(__name__)


class LiveCapture:
    """
    Filtered capture on one interface.

    Usage:
        with open_capture("eth0", "arp") as cap:
            send_frame("eth0", frame)
            raw = cap.next_frame(timeout=0.1)
    """

    def __init__(
        self,
        iface: str,
        bpf_filter: str,
        promisc: bool = True,
        start_timeout: float = settings.CAPTURE_START_TIMEOUT,
        queue_size: int = settings.CAPTURE_QUEUE_SIZE
    ):
        self.iface = iface
        self.bpf_filter = bpf_filter
        self.promisc = promisc
        self.start_timeout = start_timeout
        self._dropped = 0
        self._dropped_lock = threading.Lock()

        self._frames: "queue.Queue[bytes]" = queue.Queue(maxsize=queue_size)
        self._started = threading.Event()
        self._sniffer = None

    def _on_packet(self, packet):
        try:
            self._frames.put_nowait(bytes(packet))
        except queue.Full:
            with self._dropped_lock:
                self._dropped += 1
            logger.warning("Capture queue full on %s, dropping frame", self.iface)

    @property
    def dropped(self) -> int:
        """Frames discarded because the queue was full."""
        with self._dropped_lock:
            return self._dropped

    @property
    def listening(self) -> bool:
        return self._sniffer is not None and self._started.is_set()

    def start(self) -> 'LiveCapture':
        """
        Start sniffing and wait until the capture socket is open.

        Raises:
            CaptureError: Scapy is missing or the sniffer did not start
                (usually missing privileges or an unknown interface).
        """
        if not SCAPY_AVAILABLE:
            raise CaptureError("Scapy is required for packet capture")
        if self._sniffer is not None:
            return self

        self._sniffer = AsyncSniffer(
            iface=self.iface,
            filter=self.bpf_filter,
            prn=self._on_packet,
            store=False,
            promisc=self.promisc,
            started_callback=self._started.set
        )
        self._sniffer.start()

        if not self._started.wait(self.start_timeout):
            self.stop()
            raise CaptureError(
                f"Capture on {self.iface} did not start within "
                f"{self.start_timeout}s (are you root?)"
            )

        logger.debug("Capturing on %s with filter %r", self.iface, self.bpf_filter)
        return self

    def next_frame(self, block: bool = True,
                   timeout: Optional[float] = None) -> Optional[bytes]:
        """
        Next captured frame.

        Args:
            block: Wait for a frame if none is queued.
            timeout: Maximum seconds to wait when blocking.

        Returns:
            Raw frame bytes, or None if nothing arrived.
        """
        try:
            return self._frames.get(block=block, timeout=timeout)
        except queue.Empty:
            return None

    def stop(self):
        """Stop the sniffer thread. Safe to call more than once."""
        sniffer, self._sniffer = self._sniffer, None
        if sniffer is None:
            return
        try:
            if sniffer.running:
                sniffer.stop()
        except Scapy_Exception as e:
            # The sniffer thread died before installing its stop hook.
            logger.debug("Sniffer on %s already stopped: %s", self.iface, e)
        self._started.clear()

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False


def open_capture(iface: str, bpf_filter: str, promisc: bool = True) -> LiveCapture:
    """
    Open a capture on iface. The returned capture is already listening.
    """
    return LiveCapture(iface, bpf_filter, promisc=promisc).start()


def send_frame(iface: str, frame: bytes):
    """Inject one raw Ethernet frame on iface."""
    if not SCAPY_AVAILABLE:
        raise CaptureError("Scapy is required for frame injection")
    sendp(Ether(frame), iface=iface, verbose=False)


def default_capture_device() -> Optional[str]:
    """Scapy's default capture interface, or None if it has none."""
    if not SCAPY_AVAILABLE:
        return None
    iface = conf.iface
    if not iface:
        return None
    return getattr(iface, "network_name", None) or str(iface)
