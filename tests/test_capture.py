"""Tests for LiveCapture with Scapy's sniffer replaced."""

import threading
from types import SimpleNamespace

import pytest
from scapy.error import Scapy_Exception

from core import capture
from core.arp_packet import ARPPacketBuilder
from core.capture import LiveCapture, default_capture_device, open_capture, send_frame
from core.errors import CaptureError


class FakeSniffer:
    """Stands in for scapy's AsyncSniffer."""

    instances = []

    def __init__(self, starts=True, stop_error=False, **kwargs):
        self.kwargs = kwargs
        self.starts = starts
        self.stop_error = stop_error
        self.running = False
        self.stopped = False
        FakeSniffer.instances.append(self)

    def start(self):
        self.running = True
        if self.starts:
            self.kwargs['started_callback']()

    def stop(self):
        if self.stop_error:
            raise Scapy_Exception("Unsupported (offline or unsupported socket)")
        self.running = False
        self.stopped = True


@pytest.fixture
def sniffer(monkeypatch):
    FakeSniffer.instances = []

    def factory(**options):
        def make(**kwargs):
            return FakeSniffer(**options, **kwargs)
        monkeypatch.setattr(capture, "AsyncSniffer", make)
        return FakeSniffer.instances

    return factory


class TestLiveCapture:
    """Test start, stop and frame delivery."""

    def test_start_waits_for_listening(self, sniffer):
        instances = sniffer()
        cap = LiveCapture("eth0", "arp", promisc=False)
        assert not cap.listening
        cap.start()
        assert cap.listening

        kwargs = instances[0].kwargs
        assert kwargs['iface'] == "eth0"
        assert kwargs['filter'] == "arp"
        assert kwargs['promisc'] is False
        assert kwargs['store'] is False
        cap.stop()
        assert instances[0].stopped
        assert not cap.listening

    def test_start_timeout_raises_and_stops(self, sniffer):
        instances = sniffer(starts=False)
        cap = LiveCapture("eth0", "arp", start_timeout=0.05)
        with pytest.raises(CaptureError):
            cap.start()
        assert instances[0].stopped
        assert not cap.listening

    def test_stop_tolerates_dead_sniffer(self, sniffer):
        sniffer(stop_error=True)
        cap = LiveCapture("eth0", "arp").start()
        cap.stop()
        cap.stop()
        assert not cap.listening

    def test_context_manager(self, sniffer):
        instances = sniffer()
        with open_capture("eth0", "udp") as cap:
            assert cap.listening
        assert instances[0].stopped

    def test_frames_delivered_in_order(self, sniffer):
        sniffer()
        with open_capture("eth0", "arp") as cap:
            cap._on_packet(b"first")
            cap._on_packet(b"second")
            assert cap.next_frame(timeout=0.1) == b"first"
            assert cap.next_frame(timeout=0.1) == b"second"
            assert cap.next_frame(timeout=0.05) is None
            assert cap.next_frame(block=False) is None

    def test_full_queue_drops(self, sniffer):
        sniffer()
        cap = LiveCapture("eth0", "arp", queue_size=1).start()
        cap._on_packet(b"kept")
        cap._on_packet(b"dropped")
        assert cap.dropped == 1
        assert cap.next_frame(timeout=0.1) == b"kept"
        cap.stop()

    def test_dropped_count_from_several_threads(self):
        cap = LiveCapture("eth0", "arp", queue_size=1)
        cap._on_packet(b"kept")

        def flood():
            for _ in range(250):
                cap._on_packet(b"extra")

        threads = [threading.Thread(target=flood) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert cap.dropped == 1000

    def test_without_scapy(self, monkeypatch):
        monkeypatch.setattr(capture, "SCAPY_AVAILABLE", False)
        with pytest.raises(CaptureError):
            LiveCapture("eth0", "arp").start()
        with pytest.raises(CaptureError):
            send_frame("eth0", b"\x00" * 42)
        assert default_capture_device() is None


class TestInjectionAndDefaults:
    """Test frame injection and the default device."""

    def test_send_frame(self, monkeypatch):
        sent = []
        monkeypatch.setattr(capture, "sendp",
                            lambda pkt, iface, verbose: sent.append((bytes(pkt), iface)))
        frame = bytes(ARPPacketBuilder("02:00:00:00:00:01", "10.0.0.2")
                      .build_arp_request("10.0.0.5"))
        send_frame("eth0", frame)
        assert sent == [(frame, "eth0")]

    def test_default_capture_device(self, monkeypatch):
        monkeypatch.setattr(capture, "conf",
                            SimpleNamespace(iface=SimpleNamespace(network_name="eth9")))
        assert default_capture_device() == "eth9"

    def test_no_default_capture_device(self, monkeypatch):
        monkeypatch.setattr(capture, "conf", SimpleNamespace(iface=None))
        assert default_capture_device() is None
