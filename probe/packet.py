#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
#   Autor(s):
#       David Hannequin <david.hannequin@gmail.com>
#   Date : 2026-10-18

import math
import time

import ntplib

from probe.errors import MalformedPacketError

NTP_PORT = 123
PACKET_SIZE = 48

# number of responses collected per peer to get a good average
AVG_NUM = 4

LI_NOWARNING = 0
LI_EXTRASEC = 1
LI_MISSINGSEC = 2
LI_ALARM = 3

MODE_CLIENT = 3
MODE_SERVER = 4

NTP_VERSION = 4

LI_MASK = 0xc0
VN_MASK = 0x38
MODE_MASK = 0x07


def make_flags(leap, version, mode):
    return (leap << 6 & LI_MASK) | (version << 3 & VN_MASK) | (mode & MODE_MASK)


def short_to_seconds(value):
    """Convert a 16.16 fixed-point value to seconds."""
    return (value >> 16 & 0xffff) + (value & 0xffff) / 65536.0


def seconds_to_short(seconds):
    """Convert seconds to a 16.16 fixed-point value."""
    integer = int(seconds)
    fraction = int(round((seconds - integer) * 65536))
    if fraction == 65536:
        integer, fraction = integer + 1, 0
    return (integer & 0xffff) << 16 | fraction


def timestamp_to_seconds(value):
    """Convert a 32.32 NTP timestamp to seconds since the Unix epoch.

    The raw value 0 means "not set" and maps to 0.0.
    """
    if not value:
        return 0.0
    return ntplib.ntp_to_system_time(value >> 32) + (value & 0xffffffff) / 2.0**32


def seconds_to_timestamp(seconds):
    """Convert seconds since the Unix epoch to a 32.32 NTP timestamp."""
    if not seconds:
        return 0
    integer = math.floor(seconds)
    fraction = int(round((seconds - integer) * 2**32))
    if fraction == 2**32:
        integer, fraction = integer + 1, 0
    return (ntplib.system_to_ntp_time(integer) & 0xffffffff) << 32 | fraction


def _to_system(timestamp):
    # zero means the field was never set
    if not timestamp:
        return 0.0
    return ntplib.ntp_to_system_time(timestamp)


def _to_ntp(seconds):
    if not seconds:
        return 0
    return ntplib.system_to_ntp_time(seconds)


class NtpPacket(ntplib.NTPStats):
    """ NTP message as per rfc1305, fixed 48 bytes on the wire.

    Wire handling is ntplib's. On top of it the poll exponent is signed,
    short buffers are rejected and the timestamps are exposed in seconds
    since the Unix epoch (0.0 when unset). Root delay and dispersion are
    16.16 fixed-point seconds on the wire, timestamps 32.32 since 1900.
    """

    def __init__(self, flags=0, stratum=0, poll=0, precision=0,
                 root_delay=0.0, root_dispersion=0.0, reference_id=0,
                 reference_timestamp=0.0, origin_timestamp=0.0,
                 receive_timestamp=0.0, transmit_timestamp=0.0):
        super().__init__()
        self.flags = flags
        self.stratum = stratum
        self.poll = poll
        self.precision = precision
        self.root_delay = root_delay
        self.root_dispersion = root_dispersion
        self.ref_id = reference_id
        self.reference_timestamp = reference_timestamp
        self.origin_timestamp = origin_timestamp
        self.receive_timestamp = receive_timestamp
        self.transmit_timestamp = transmit_timestamp

    @property
    def flags(self):
        return make_flags(self.leap, self.version, self.mode)

    @flags.setter
    def flags(self, value):
        self.leap = (value & LI_MASK) >> 6
        self.version = (value & VN_MASK) >> 3
        self.mode = value & MODE_MASK

    @property
    def reference_id(self):
        return self.ref_id

    @property
    def reference_timestamp(self):
        return _to_system(self.ref_timestamp)

    @reference_timestamp.setter
    def reference_timestamp(self, seconds):
        self.ref_timestamp = _to_ntp(seconds)

    @property
    def origin_timestamp(self):
        return _to_system(self.orig_timestamp)

    @origin_timestamp.setter
    def origin_timestamp(self, seconds):
        # ntplib packs the origin from its raw halves
        timestamp = seconds_to_timestamp(seconds)
        self.orig_timestamp = _to_ntp(seconds)
        self.orig_timestamp_high = timestamp >> 32
        self.orig_timestamp_low = timestamp & 0xffffffff

    @property
    def receive_timestamp(self):
        return _to_system(self.recv_timestamp)

    @receive_timestamp.setter
    def receive_timestamp(self, seconds):
        self.recv_timestamp = _to_ntp(seconds)

    @property
    def transmit_timestamp(self):
        return _to_system(self.tx_timestamp)

    @transmit_timestamp.setter
    def transmit_timestamp(self, seconds):
        self.tx_timestamp = _to_ntp(seconds)

    def to_data(self):
        poll = self.poll
        self.poll = poll & 0xff
        try:
            return super().to_data()
        finally:
            self.poll = poll

    def from_data(self, data):
        if len(data) < PACKET_SIZE:
            raise MalformedPacketError(
                f"Short NTP packet: {len(data)} of {PACKET_SIZE} bytes")
        super().from_data(data)
        if self.poll > 127:
            self.poll -= 256
        return self


def encode_request(now=None):
    """Build a client request stamped with the current wall clock."""
    if now is None:
        now = time.time()
    packet = NtpPacket(flags=make_flags(LI_ALARM, NTP_VERSION, MODE_CLIENT),
                       poll=4,
                       precision=-6,
                       root_delay=1.0,
                       root_dispersion=1.0,
                       transmit_timestamp=now)
    return packet.to_data()


def decode_response(data):
    return NtpPacket().from_data(data)


def clock_offset(packet, local_receive):
    """Offset of the local clock against the peer that sent ``packet``."""
    packet.dest_timestamp = ntplib.system_to_ntp_time(local_receive)
    return packet.offset


def describe(packet):
    lines = [
        "packet contents:",
        f"\tflags: 0x{packet.flags:02x}",
        f"\t  li={packet.leap} ({ntplib.leap_to_text(packet.leap)})",
        f"\t  vn={packet.version}",
        f"\t  mode={packet.mode} ({ntplib.mode_to_text(packet.mode)})",
        f"\tstratum = {packet.stratum}",
        f"\tpoll = {2.0 ** packet.poll:g}",
        f"\tprecision = {2.0 ** packet.precision:g}",
        f"\trtdelay = {packet.root_delay:.16g}",
        f"\trtdisp = {packet.root_dispersion:.16g}",
        f"\trefid = {packet.reference_id:x}",
        f"\trefts = {packet.reference_timestamp:.16g}",
        f"\torigts = {packet.origin_timestamp:.16g}",
        f"\trxts = {packet.receive_timestamp:.16g}",
        f"\ttxts = {packet.transmit_timestamp:.16g}",
    ]
    return "\n".join(lines)
