import itertools
import socket
import threading

import pytest

from probe.packet import (LI_NOWARNING, MODE_SERVER, NtpPacket, decode_response,
                        make_flags)

NOW = 1700000000.0

# captured before any test patches socket.socket
RealSocket = socket.socket


def frozen_clock():
    return NOW


class FakePeer:
    """ UDP NTP server on 127.0.0.1 answering with fixed offsets."""

    def __init__(self, offsets=(0.0,), stratum=1, leap=LI_NOWARNING,
                 root_delay=0.01, root_dispersion=0.01, silent=False,
                 short_replies=0, clock=frozen_clock):
        self.offsets = itertools.cycle(offsets)
        self.stratum = stratum
        self.leap = leap
        self.root_delay = root_delay
        self.root_dispersion = root_dispersion
        self.silent = silent
        self.short_replies = short_replies
        self.clock = clock
        self.requests = 0
        self.sock = RealSocket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(('127.0.0.1', 0))
        self.sock.settimeout(0.05)
        self.address = self.sock.getsockname()
        self.stopped = threading.Event()
        self.thread = threading.Thread(target=self.serve, daemon=True)
        self.thread.start()

    def reply(self, request):
        offset = next(self.offsets)
        now = self.clock()
        return NtpPacket(flags=make_flags(self.leap, 4, MODE_SERVER),
                         stratum=self.stratum,
                         root_delay=self.root_delay,
                         root_dispersion=self.root_dispersion,
                         origin_timestamp=request.transmit_timestamp,
                         receive_timestamp=now + offset,
                         transmit_timestamp=now + offset).to_data()

    def serve(self):
        while not self.stopped.is_set():
            try:
                data, client = self.sock.recvfrom(1024)
            except socket.timeout:
                continue
            except OSError:
                return
            self.requests += 1
            if self.silent:
                continue
            if self.short_replies:
                self.short_replies -= 1
                reply = data[:20]
            else:
                reply = self.reply(decode_response(data))
            try:
                self.sock.sendto(reply, client)
            except OSError:
                continue

    def stop(self):
        self.stopped.set()
        self.thread.join()
        self.sock.close()


@pytest.fixture
def fake_peer():
    peers = []

    def factory(**kwargs):
        peer = FakePeer(**kwargs)
        peers.append(peer)
        return peer

    yield factory
    for peer in peers:
        peer.stop()


@pytest.fixture
def addresses_of():
    def convert(*peers):
        return [(socket.AF_INET, peer.address) for peer in peers]

    return convert
