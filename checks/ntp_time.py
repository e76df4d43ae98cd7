#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
#   Autor(s):
#       David Hannequin <david.hannequin@gmail.com>
#   Date : 2026-10-18

import logging
import socket
import threading
import time

from core.config import ConfigError
from core.states import CheckResult, State
from core.thresholds import Thresholds
from probe.errors import NTPCheckError
from probe.poller import OffsetPoller, resolve
from probe.selector import average_offset, best_offset_server

logger = logging.getLogger(__name__)

ADDRESS_FAMILIES = {
    'any': socket.AF_UNSPEC,
    'ipv4': socket.AF_INET,
    'ipv6': socket.AF_INET6,
}


class NTPTimeCheck:
    """ Class to check the clock offset against an NTP server."""

    name = "NTP"

    def __init__(self, config, clock=time.time):
        self.hostname = config.get('Ntp', 'hostname')
        if not self.hostname:
            raise ConfigError("Hostname was not supplied")
        self.port = config.get('Ntp', 'port')
        family = config.get('Ntp', 'address_family').lower()
        if family not in ADDRESS_FAMILIES:
            raise ConfigError(f"Invalid address family: {family}")
        self.address_family = ADDRESS_FAMILIES[family]
        try:
            self.timeout = config.getint('Ntp', 'timeout')
            self.time_offset = config.getint('Ntp', 'time_offset')
            self.samples = config.getint('Ntp', 'samples')
            self.unknown_as_critical = config.getboolean('Ntp',
                                                         'unknown_as_critical')
        except ValueError as error:
            raise ConfigError(str(error))
        if self.timeout <= 0:
            raise ConfigError(f"Timeout must be positive: {self.timeout}")
        if self.samples <= 0:
            raise ConfigError(f"Samples must be positive: {self.samples}")
        self.thresholds = Thresholds.parse(config.get('Ntp', 'warning'),
                                           config.get('Ntp', 'critical'))
        self.clock = clock

    def offset_request(self, cancel=None):
        """Average offset of the best peer, or None if no peer qualifies."""
        # stop polling at half the timeout to leave time for post-processing
        deadline = time.monotonic() + self.timeout / 2
        addresses = resolve(self.hostname, self.port, self.address_family)
        poller = OffsetPoller(addresses,
                              samples=self.samples,
                              time_offset=self.time_offset,
                              clock=self.clock)
        peers = poller.poll(deadline, cancel)

        best = best_offset_server(peers)
        if best is None:
            return None
        offset = average_offset(peers[best])
        logger.info("overall average offset: %.10g", offset)
        return offset

    def check_ntp_time(self, cancel=None):
        try:
            offset = self.offset_request(cancel)
        except NTPCheckError as error:
            return CheckResult(self.name, error.state, error.message)

        if offset is None:
            state = State.CRITICAL if self.unknown_as_critical else State.UNKNOWN
            return CheckResult(self.name, state, "Offset unknown")
        return CheckResult(self.name,
                           self.thresholds.get_status(abs(offset)),
                           f"Offset {offset:.10g} secs",
                           self.thresholds.perfdata("offset", offset, "s"),
                           offset)

    def run(self):
        cancel = threading.Event()
        results = []
        errors = []

        def worker():
            try:
                results.append(self.check_ntp_time(cancel))
            except Exception as error:
                errors.append(error)

        thread = threading.Thread(target=worker, daemon=True)
        thread.start()
        thread.join(self.timeout)
        if thread.is_alive():
            cancel.set()
            return CheckResult(self.name, State.UNKNOWN,
                               f"Socket timeout after {self.timeout} seconds")
        if errors:
            raise errors[0]
        return results[0]
