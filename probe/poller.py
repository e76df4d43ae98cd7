#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
#   Autor(s):
#       David Hannequin <david.hannequin@gmail.com>
#   Date : 2026-10-18

import logging
import selectors
import socket
import time
from dataclasses import dataclass, field

from probe.errors import (CheckTimeout, MalformedPacketError, NoResponseError,
                          PollError, ResolutionError, SocketCreationError)
from probe.packet import (AVG_NUM, LI_MASK, NTP_PORT, clock_offset,
                          decode_response, describe, encode_request)

logger = logging.getLogger(__name__)

POLL_SLICE = 0.1
RESEND_INTERVAL = 1.0
RECV_SIZE = 1024


@dataclass
class PeerSample:
    """ Results collected from one peer address."""

    address: tuple
    waiting_since: float = None
    responses: list = field(default_factory=list)
    stratum: int = 0
    root_dispersion: float = 0.0
    root_delay: float = 0.0
    flags: int = 0

    @property
    def leap(self):
        return (self.flags & LI_MASK) >> 6

    def needs_samples(self, target):
        return len(self.responses) < target


def resolve(host, port=NTP_PORT, family=socket.AF_UNSPEC):
    """Return ``(family, sockaddr)`` for every UDP address of ``host``."""
    try:
        addresses = socket.getaddrinfo(host, port, family, socket.SOCK_DGRAM,
                                       socket.IPPROTO_UDP)
    except socket.gaierror as error:
        raise ResolutionError(
            f"error getting address for {host}: {error.strerror}")
    if not addresses:
        raise ResolutionError(f"error getting address for {host}: no address")
    return [(info[0], info[4]) for info in addresses]


class OffsetPoller:
    """ Collect offset samples from a list of peer addresses.

    One connected UDP socket per address is driven from a single loop: at
    most one request goes out per iteration, then the loop waits a short
    slice for any socket to become readable and records the replies.
    """

    def __init__(self, addresses, samples=AVG_NUM, time_offset=0,
                 clock=time.time, monotonic=time.monotonic,
                 poll_slice=POLL_SLICE, resend_interval=RESEND_INTERVAL):
        self.addresses = list(addresses)
        self.samples = samples
        self.time_offset = time_offset
        self.clock = clock
        self.monotonic = monotonic
        self.poll_slice = poll_slice
        self.resend_interval = resend_interval

    def poll(self, deadline, cancel=None):
        """Sample every peer until each has enough responses or until
        ``deadline`` (a ``monotonic`` value) passes.

        Returns the list of :class:`PeerSample` in address order. Raises
        :class:`NoResponseError` if no peer answered at all.
        """
        peers = [PeerSample(address) for _, address in self.addresses]
        sockets = {}
        selector = selectors.DefaultSelector()
        logger.debug("Found %d peers to check", len(peers))
        try:
            self._open_sockets(sockets, selector)
            one_read = False
            cursor = 0
            while self._pending(peers, sockets) and self.monotonic() <= deadline:
                if cancel is not None and cancel.is_set():
                    raise CheckTimeout("offset request cancelled")
                cursor = self._send_request(peers, sockets, cursor)

                wait = min(self.poll_slice, max(deadline - self.monotonic(), 0))
                try:
                    events = selector.select(wait)
                except OSError as error:
                    raise PollError(f"communication errors: {error}")

                for key, _ in events:
                    index = key.data
                    peer = peers[index]
                    if not peer.needs_samples(self.samples):
                        continue
                    if self._read_response(index, peer, key.fileobj):
                        one_read = True
                        if not peer.needs_samples(self.samples):
                            selector.unregister(key.fileobj)
            if not one_read:
                raise NoResponseError("No response from NTP server")
            return peers
        finally:
            selector.close()
            for sock in sockets.values():
                sock.close()

    def _open_sockets(self, sockets, selector):
        for index, (family, address) in enumerate(self.addresses):
            try:
                sock = socket.socket(family, socket.SOCK_DGRAM,
                                     socket.IPPROTO_UDP)
            except OSError as error:
                raise SocketCreationError(
                    f"can not create new socket: {error}")
            sockets[index] = sock
            try:
                sock.connect(address)
            except OSError as error:
                # one answering peer is enough, and dual stacked servers
                # may not be reachable over both families
                logger.debug("can't create socket connection on peer %d: %s",
                             index, error)
                sockets.pop(index).close()
                continue
            sock.setblocking(False)
            selector.register(sock, selectors.EVENT_READ, index)

    def _pending(self, peers, sockets):
        return any(peers[index].needs_samples(self.samples)
                   for index in sockets)

    def _send_request(self, peers, sockets, cursor):
        """Send at most one request, scanning peers round-robin from
        ``cursor``. Returns the cursor for the next iteration."""
        now = self.monotonic()
        indexes = sorted(sockets, key=lambda index: (index < cursor, index))
        for index in indexes:
            sock = sockets[index]
            peer = peers[index]
            if not peer.needs_samples(self.samples):
                continue
            if (peer.waiting_since is not None
                    and now - peer.waiting_since < self.resend_interval):
                continue
            if peer.waiting_since is not None:
                logger.info("re-sending request to peer %d", index)
            else:
                logger.info("sending request to peer %d", index)
            try:
                sock.send(encode_request(self.clock()))
            except OSError as error:
                logger.debug("send to peer %d failed: %s", index, error)
            peer.waiting_since = now
            return index + 1
        return cursor

    def _read_response(self, index, peer, sock):
        try:
            data = sock.recv(RECV_SIZE)
        except OSError as error:
            logger.debug("receive from peer %d failed: %s", index, error)
            return False
        received = self.clock()
        try:
            packet = decode_response(data)
        except MalformedPacketError as error:
            logger.debug("discarding response from peer %d: %s", index, error)
            return False
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(describe(packet))

        offset = clock_offset(packet, received) + self.time_offset
        peer.responses.append(offset)
        peer.stratum = packet.stratum
        peer.root_dispersion = packet.root_dispersion
        peer.root_delay = packet.root_delay
        peer.flags = packet.flags
        peer.waiting_since = None
        logger.info("response from peer %d: offset %.10g", index, offset)
        return True
