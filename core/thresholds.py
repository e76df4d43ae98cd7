#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
#   Autor(s):
#       David Hannequin <david.hannequin@gmail.com>
#   Date : 2026-10-18

import math

from core.states import State


class ThresholdError(ValueError):
    """ Threshold string could not be parsed."""


class Range:
    """ One alert range in the monitoring-plugins syntax.

    A range is ``[@][start:][end]``: ``start`` defaults to 0, ``~`` stands
    for negative infinity and an empty ``end`` for positive infinity. A
    value outside the range alerts, or inside it (inclusive) when the
    range starts with ``@``.
    """

    def __init__(self, start=0.0, end=math.inf, inside=False):
        self.start = start
        self.end = end
        self.inside = inside

    @classmethod
    def parse(cls, text):
        body = text.strip()
        inside = body.startswith('@')
        if inside:
            body = body[1:]
        start_text, separator, end_text = body.rpartition(':')
        if not separator:
            start_text, end_text = '', body
        try:
            if start_text == '~':
                start = -math.inf
            else:
                start = float(start_text) if start_text else 0.0
            end = float(end_text) if end_text else math.inf
        except ValueError:
            raise ThresholdError(f"Invalid threshold: {text!r}")
        if not start_text and not end_text:
            raise ThresholdError(f"Invalid threshold: {text!r}")
        if start > end:
            raise ThresholdError(
                f"Invalid threshold: {text!r} (start greater than end)")
        return cls(start, end, inside)

    def alerts(self, value):
        within = self.start <= value <= self.end
        return within if self.inside else not within


class Thresholds:
    """ Warning and critical ranges evaluated together."""

    def __init__(self, warning=None, critical=None):
        self.warning = warning
        self.critical = critical

    @classmethod
    def parse(cls, warning, critical):
        return cls(Range.parse(warning) if warning else None,
                   Range.parse(critical) if critical else None)

    def get_status(self, value):
        if self.critical is not None and self.critical.alerts(value):
            return State.CRITICAL
        if self.warning is not None and self.warning.alerts(value):
            return State.WARNING
        return State.OK

    def perfdata(self, label, value, uom=""):
        data = f"{label}={value:f}{uom};"
        data += f"{self.warning.end:f};" if self.warning is not None else ";"
        data += f"{self.critical.end:f};" if self.critical is not None else ";"
        return data
