#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
#   Autor(s):
#       David Hannequin <david.hannequin@gmail.com>
#   Date : 2026-10-18

import ntplib

from core.states import State


class NTPCheckError(ntplib.NTPException):
    """ Fatal condition for one offset request."""

    state = State.UNKNOWN

    def __init__(self, message, state=None):
        super().__init__(message)
        self.message = message
        if state is not None:
            self.state = state


class ResolutionError(NTPCheckError):
    """ Hostname did not resolve to any address."""


class SocketCreationError(NTPCheckError):
    """ A UDP socket could not be created."""


class PollError(NTPCheckError):
    """ The readiness wait on the peer sockets failed."""


class NoResponseError(NTPCheckError):
    """ Not a single peer answered before the deadline."""

    state = State.CRITICAL


class CheckTimeout(NTPCheckError):
    """ The overall check timeout expired."""


class MalformedPacketError(ntplib.NTPException):
    """ Buffer is not a valid NTP packet."""
