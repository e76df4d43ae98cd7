import struct

import ntplib
import pytest

from probe.errors import MalformedPacketError
from probe.packet import (LI_ALARM, LI_NOWARNING, MODE_CLIENT, MODE_SERVER,
                        PACKET_SIZE, NtpPacket, clock_offset, decode_response,
                        describe, encode_request, make_flags, seconds_to_short,
                        seconds_to_timestamp, short_to_seconds,
                        timestamp_to_seconds)

NTP_DELTA = 2208988800
NOW = 1700000000.0


@pytest.mark.parametrize("raw", [0, 1, 0x00010000, 0x0001ffff, 0x12345678,
                                 0xffffffff])
def test_short_fixed_point_round_trip(raw):
    assert seconds_to_short(short_to_seconds(raw)) == raw


def test_short_fixed_point_halves():
    assert short_to_seconds(0x00018000) == 1.5
    assert short_to_seconds(0x00000001) == 1 / 65536
    assert seconds_to_short(2.25) == 0x00024000


@pytest.mark.parametrize("seconds", [NOW, NOW + 0.123456, 946684800.5,
                                     1.000001])
def test_timestamp_round_trip_to_the_microsecond(seconds):
    assert timestamp_to_seconds(seconds_to_timestamp(seconds)) == \
        pytest.approx(seconds, abs=1e-6)


def test_timestamp_epoch_and_fraction():
    assert seconds_to_timestamp(1.5) == (NTP_DELTA + 1) << 32 | 2**31
    assert timestamp_to_seconds(NTP_DELTA << 32) == 0.0
    assert timestamp_to_seconds((NTP_DELTA + 10) << 32 | 2**30) == 10.25


def test_zero_timestamp_means_unset():
    assert seconds_to_timestamp(0) == 0
    assert timestamp_to_seconds(0) == 0.0


def test_request_layout():
    data = encode_request(NOW)

    assert len(data) == PACKET_SIZE == 48
    # leap indicator alarm, version 4, client mode
    assert data[0] == 0xe3
    assert data[1] == 0
    assert data[2] == 4
    assert data[3] == 0xfa
    assert data[4:8] == b'\x00\x01\x00\x00'
    assert data[8:12] == b'\x00\x01\x00\x00'
    assert data[12:40] == bytes(28)
    assert data[40:48] == struct.pack("!II", int(NOW) + NTP_DELTA, 0)


def test_request_decodes_back():
    request = decode_response(encode_request(NOW))

    assert request.leap == LI_ALARM
    assert request.version == 4
    assert request.mode == MODE_CLIENT
    assert request.poll == 4
    assert request.precision == -6
    assert request.root_delay == 1.0
    assert request.root_dispersion == 1.0
    assert request.transmit_timestamp == NOW
    assert request.origin_timestamp == 0.0


def test_response_fields_are_decoded():
    data = struct.pack("!B B b b 11I",
                       make_flags(LI_NOWARNING, 4, MODE_SERVER), 2, 6, -20,
                       0x00000800, 0x00001000, 0x7f000001,
                       NTP_DELTA + 100, 0,
                       NTP_DELTA + 200, 2**31,
                       NTP_DELTA + 201, 0,
                       NTP_DELTA + 202, 2**30)
    packet = decode_response(data)

    assert packet.leap == LI_NOWARNING
    assert packet.mode == MODE_SERVER
    assert packet.stratum == 2
    assert packet.poll == 6
    assert packet.precision == -20
    assert packet.root_delay == 0x800 / 65536
    assert packet.root_dispersion == 0x1000 / 65536
    assert packet.reference_id == 0x7f000001
    assert packet.reference_timestamp == 100.0
    assert packet.origin_timestamp == 200.5
    assert packet.receive_timestamp == 201.0
    assert packet.transmit_timestamp == 202.25


def test_short_buffer_is_malformed():
    with pytest.raises(MalformedPacketError):
        decode_response(encode_request(NOW)[:47])
    with pytest.raises(MalformedPacketError):
        decode_response(b"")


def test_trailing_bytes_are_ignored():
    packet = decode_response(encode_request(NOW) + b"\x00" * 20)
    assert packet.transmit_timestamp == NOW


def test_short_buffer_is_rejected_before_unpacking(monkeypatch):
    def unpack(self, data):
        raise AssertionError("short buffer reached the unpacker")

    monkeypatch.setattr(ntplib.NTPPacket, "from_data", unpack)
    with pytest.raises(MalformedPacketError, match="47 of 48"):
        decode_response(bytes(47))


def test_packet_keeps_ntplib_fields():
    packet = decode_response(encode_request(NOW))

    assert isinstance(packet, ntplib.NTPPacket)
    assert packet.tx_timestamp == NOW + NTP_DELTA
    assert ntplib.ntp_to_system_time(packet.tx_timestamp) == NOW
    assert ntplib.mode_to_text(packet.mode) == "client"


def test_poll_is_signed():
    data = bytearray(encode_request(NOW))
    data[2] = 0xfa
    assert decode_response(bytes(data)).poll == -6

    packet = NtpPacket(poll=-3)
    assert packet.to_data()[2] == 0xfd
    assert packet.poll == -3


def test_offset_agrees_with_ntplib_stats():
    data = NtpPacket(flags=make_flags(LI_NOWARNING, 4, MODE_SERVER),
                     origin_timestamp=NOW,
                     receive_timestamp=NOW + 1.05,
                     transmit_timestamp=NOW + 1.06).to_data()
    stats = ntplib.NTPStats()
    stats.from_data(data)
    stats.dest_timestamp = ntplib.system_to_ntp_time(NOW + 0.11)

    assert clock_offset(decode_response(data), NOW + 0.11) == stats.offset


def test_offset_is_zero_without_delay_or_skew():
    packet = NtpPacket(origin_timestamp=NOW, receive_timestamp=NOW,
                       transmit_timestamp=NOW)
    assert clock_offset(packet, NOW) == 0.0


def test_offset_with_symmetric_delay():
    # 50ms each way, 10ms server processing, no skew
    packet = NtpPacket(origin_timestamp=NOW,
                       receive_timestamp=NOW + 0.05,
                       transmit_timestamp=NOW + 0.06)
    assert clock_offset(packet, NOW + 0.11) == pytest.approx(0.0, abs=1e-6)


def test_offset_with_server_ahead():
    packet = NtpPacket(origin_timestamp=NOW,
                       receive_timestamp=NOW + 1.05,
                       transmit_timestamp=NOW + 1.06)
    assert clock_offset(packet, NOW + 0.11) == pytest.approx(1.0, abs=1e-6)


def test_offset_is_antisymmetric():
    t1, t2, t3, t4 = NOW, NOW + 0.31, NOW + 0.32, NOW + 0.05
    forward = clock_offset(NtpPacket(origin_timestamp=t1, receive_timestamp=t2,
                                     transmit_timestamp=t3), t4)
    # the server queries the client with the timestamps negated
    backward = clock_offset(NtpPacket(origin_timestamp=-t4,
                                      receive_timestamp=-t3,
                                      transmit_timestamp=-t2), -t1)
    assert backward == pytest.approx(-forward, abs=1e-6)


def test_describe_lists_fields():
    text = describe(decode_response(encode_request(NOW)))
    assert "li=3" in text
    assert "stratum = 0" in text
    assert "poll = 16" in text
    assert "precision = 0.015625" in text
